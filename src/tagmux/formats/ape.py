"""
APEv2 tag block backed by mutagen.apev2.

Found at the end of MPEG streams and Monkey's Audio, WavPack and Musepack
files. Cover art lives in binary items named 'Cover Art (<Type>)', which
limits a tag to one picture per type.
"""

import logging
from pathlib import Path
from typing import List, Union

import mutagen
import mutagen.apev2 as apev2

from .. import keys
from ..errors import CapacityExceeded, CorruptTag, UnsupportedOperation
from ..model import BlockKind, Picture, PropertyEntry
from ..pictures import ape_cover_key, decode_ape_cover, encode_ape_cover
from .base import TagBlock

logger = logging.getLogger(__name__)


def _is_cover(key: str) -> bool:
    return key.lower().startswith(keys.APE_COVER_PREFIX)


class APEBlock(TagBlock):
    """Text items map through the APE key table; binary and external items stay native."""

    kind = BlockKind.APE
    supports_pictures = True

    def __init__(self, tags: apev2.APEv2, on_disk: bool = True):
        super().__init__(on_disk=on_disk)
        self.tags = tags

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'APEBlock':
        try:
            tags = apev2.APEv2(path)
        except mutagen.MutagenError as e:
            raise CorruptTag(f"Unreadable APEv2 tag in {path}: {e}") from e
        except Exception as e:
            raise CorruptTag(f"Failed to parse APEv2 tag in {path}: {e}") from e
        return cls(tags)

    @classmethod
    def create(cls) -> 'APEBlock':
        return cls(apev2.APEv2(), on_disk=False)

    # ---------- Properties ----------

    def entries(self) -> List[PropertyEntry]:
        out = []
        for key, value in self.tags.items():
            if value.kind == apev2.TEXT:
                canon = keys.ape_to_canonical(key)
                out.extend(self._entry(canon, v) for v in value)
            elif value.kind == apev2.BINARY and _is_cover(key):
                continue
            elif value.kind == apev2.BINARY:
                out.append(self._entry(key, f"<binary {len(value.value)} bytes>", native=True))
            else:
                out.append(self._entry(key, str(value), native=True))
        return out

    def _native_keys(self, key: str) -> List[str]:
        """Stored item keys whose canonical form is ``key``."""
        return [k for k, v in self.tags.items()
                if (keys.ape_to_canonical(k) if v.kind == apev2.TEXT else k.upper()) == key]

    def _set(self, key: str, values: List[str]) -> None:
        existing = self._native_keys(key)
        native = existing[0] if existing else keys.canonical_to_ape(key)
        for old in existing[1:]:
            del self.tags[old]
        try:
            self.tags[native] = values
        except KeyError as e:
            # APE keys are 2-255 printable ASCII chars and exclude a few reserved names
            raise UnsupportedOperation(f"Invalid APE item key {native!r}: {e}") from e

    def _remove(self, key: str) -> bool:
        existing = self._native_keys(key)
        for old in existing:
            del self.tags[old]
        return bool(existing)

    def _clear(self) -> None:
        self.tags.clear()

    # ---------- Pictures ----------

    def _read_pictures(self) -> List[Picture]:
        out = []
        for key, value in self.tags.items():
            if value.kind == apev2.BINARY and _is_cover(key):
                try:
                    out.append(decode_ape_cover(key, value.value))
                except CorruptTag as e:
                    logger.debug(f"Skipping malformed APE cover item {key!r}: {e}")
        return out

    def _set_pictures(self, pictures: List[Picture]) -> None:
        items = {}
        for pic in pictures:
            item_key = ape_cover_key(pic.picture_type)
            if item_key.lower() in items:
                raise CapacityExceeded(
                    f"APE tags hold one picture per type; '{pic.picture_type}' is already used")
            items[item_key.lower()] = (item_key, pic)
        for key in [k for k in self.tags.keys() if _is_cover(k)]:
            del self.tags[key]
        for item_key, pic in items.values():
            self.tags[item_key] = apev2.APEBinaryValue(encode_ape_cover(pic))

    # ---------- Serialization ----------

    def commit(self, target: Union[str, Path]) -> None:
        self.tags.save(target)

    def strip(self, target: Union[str, Path]) -> None:
        apev2.delete(target)
