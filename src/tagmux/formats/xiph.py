"""
Xiph/Vorbis comment block for FLAC and the Ogg family, backed by mutagen.

Native FLAC keeps pictures in PICTURE metadata blocks; Ogg streams carry
them as base64 METADATA_BLOCK_PICTURE comments.
"""

import base64
import binascii
import logging
import struct
from pathlib import Path
from typing import Any, List, Union

import mutagen
import mutagen.flac as flac

from ..errors import UnsupportedOperation
from ..model import BlockKind, Picture, PropertyEntry
from ..pictures import picture_type_code, picture_type_name, sniff_mime
from .base import TagBlock

logger = logging.getLogger(__name__)

PICTURE_FIELD = 'METADATA_BLOCK_PICTURE'


def picture_from_flac(pic: flac.Picture) -> Picture:
    return Picture(
        data=pic.data,
        mime_type=pic.mime or sniff_mime(pic.data),
        description=pic.desc,
        picture_type=picture_type_name(pic.type),
        params={'width': pic.width, 'height': pic.height,
                'depth': pic.depth, 'colors': pic.colors},
    )


def picture_to_flac(picture: Picture) -> flac.Picture:
    pic = flac.Picture()
    pic.type = picture_type_code(picture.picture_type)
    pic.mime = picture.mime_type or sniff_mime(picture.data)
    pic.desc = picture.description
    pic.width = picture.params.get('width', 0)
    pic.height = picture.params.get('height', 0)
    pic.depth = picture.params.get('depth', 0)
    pic.colors = picture.params.get('colors', 0)
    pic.data = picture.data
    return pic


class XiphBlock(TagBlock):
    """Vorbis comments of a FLAC or Ogg host file."""

    kind = BlockKind.XIPH
    supports_pictures = True

    def __init__(self, host: Any, on_disk: bool = True):
        super().__init__(on_disk=on_disk)
        self.host = host
        if host.tags is None:
            host.add_tags()
        self.is_flac = isinstance(host, flac.FLAC)

    @property
    def tags(self):
        return self.host.tags

    # ---------- Properties ----------

    def entries(self) -> List[PropertyEntry]:
        out = []
        for key, value in self.tags:
            if key.upper() == PICTURE_FIELD:
                continue
            out.append(self._entry(key.upper(), value))
        return out

    def _set(self, key: str, values: List[str]) -> None:
        try:
            self.tags[key] = values
        except ValueError as e:
            # Vorbis field names are printable ASCII without '='
            raise UnsupportedOperation(f"Invalid Vorbis comment key {key!r}: {e}") from e

    def _remove(self, key: str) -> bool:
        if key not in self.tags:
            return False
        del self.tags[key]
        return True

    def _clear(self) -> None:
        self.tags.clear()
        if self.is_flac:
            self.host.clear_pictures()

    # ---------- Pictures ----------

    def _read_pictures(self) -> List[Picture]:
        if self.is_flac:
            return [picture_from_flac(p) for p in self.host.pictures]
        out = []
        for value in self.tags.get(PICTURE_FIELD, []):
            try:
                out.append(picture_from_flac(flac.Picture(base64.b64decode(value))))
            except (binascii.Error, mutagen.MutagenError, ValueError, struct.error) as e:
                logger.debug(f"Skipping undecodable {PICTURE_FIELD} entry: {e}")
        return out

    def _set_pictures(self, pictures: List[Picture]) -> None:
        encoded = [picture_to_flac(p) for p in pictures]
        if self.is_flac:
            self.host.clear_pictures()
            for pic in encoded:
                self.host.add_picture(pic)
            return
        if PICTURE_FIELD in self.tags:
            del self.tags[PICTURE_FIELD]
        if encoded:
            self.tags[PICTURE_FIELD] = [base64.b64encode(p.write()).decode('ascii') for p in encoded]

    # ---------- Serialization ----------

    def commit(self, target: Union[str, Path]) -> None:
        self.host.save(target)

    def strip(self, target: Union[str, Path]) -> None:
        self.tags.clear()
        if self.is_flac:
            self.host.clear_pictures()
            self.host.delete(target)
        else:
            # Ogg streams must keep an (empty) comment header
            self.host.save(target)
