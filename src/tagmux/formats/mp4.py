"""
MP4/M4A atom metadata (the iTunes ilst) backed by mutagen.mp4.
"""

import logging
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

import mutagen.mp4 as mp4

from .. import keys
from ..errors import UnsupportedOperation
from ..model import BlockKind, Picture, PropertyEntry
from ..pictures import DEFAULT_PICTURE_TYPE, sniff_mime
from ..utils import Config
from .base import TagBlock

logger = logging.getLogger(__name__)

# covr data types; mutagen names only JPEG and PNG but stores any code
_COVER_FORMATS = {
    mp4.MP4Cover.FORMAT_JPEG: 'image/jpeg',
    mp4.MP4Cover.FORMAT_PNG: 'image/png',
    12: 'image/gif',
    27: 'image/bmp',
}
_COVER_CODES = {mime: code for code, mime in _COVER_FORMATS.items()}


def _pair_text(pair: Tuple[int, int]) -> str:
    number, total = pair
    return f"{number}/{total}" if total else str(number)


def _parse_pair(value: str) -> Tuple[int, int]:
    number, _, total = value.partition('/')
    try:
        return int(number or 0), int(total or 0)
    except ValueError:
        raise UnsupportedOperation(f"Expected 'n' or 'n/total', got {value!r}")


def _freeform_name(key: str) -> Optional[str]:
    """Name part of a '----:<namespace>:<name>' atom under the configured namespace."""
    prefix = f"----:{Config.DEFAULT_NAMESPACE}:"
    if key.startswith(prefix):
        return key[len(prefix):]
    return None


class MP4Block(TagBlock):
    """iTunes-style atoms plus freeform atoms under the configured namespace."""

    kind = BlockKind.MP4
    supports_pictures = True

    def __init__(self, host: mp4.MP4, on_disk: bool = True):
        super().__init__(on_disk=on_disk)
        self.host = host
        if host.tags is None:
            host.add_tags()

    @property
    def tags(self) -> mp4.MP4Tags:
        return self.host.tags

    # ---------- Properties ----------

    def _atom_entries(self, atom: str, values: Any) -> List[PropertyEntry]:
        if atom == keys.MP4_COVER_ATOM:
            return []
        if atom in keys.MP4_TEXT_ATOMS:
            return [self._entry(keys.MP4_TEXT_ATOMS[atom], v) for v in values]
        if atom == keys.MP4_TRACK_ATOM:
            return [self._entry('TRACKNUMBER', _pair_text(v)) for v in values]
        if atom == keys.MP4_DISC_ATOM:
            return [self._entry('DISCNUMBER', _pair_text(v)) for v in values]
        if atom == keys.MP4_BPM_ATOM:
            return [self._entry('BPM', v) for v in values]
        if atom == keys.MP4_COMPILATION_ATOM:
            return [self._entry('COMPILATION', '1' if values else '0')]
        name = _freeform_name(atom)
        if name is not None:
            out = []
            for v in values:
                if getattr(v, 'dataformat', mp4.AtomDataType.UTF8) == mp4.AtomDataType.UTF8:
                    out.append(self._entry(keys.mp4_freeform_to_canonical(name),
                                           bytes(v).decode('utf-8', errors='replace')))
                else:
                    out.append(self._entry(atom, f"<binary {len(v)} bytes>", native=True))
            return out
        if isinstance(values, list):
            return [self._entry(atom, v, native=True) for v in values]
        return [self._entry(atom, values, native=True)]

    def entries(self) -> List[PropertyEntry]:
        out = []
        for atom, values in self.tags.items():
            out.extend(self._atom_entries(atom, values))
        return out

    def _atoms_for(self, key: str) -> List[str]:
        return [atom for atom, values in self.tags.items()
                if any(e.key.upper() == key for e in self._atom_entries(atom, values))]

    def _set(self, key: str, values: List[str]) -> None:
        tags = self.tags
        if key in keys.MP4_TEXT_KEYS:
            tags[keys.MP4_TEXT_KEYS[key]] = values
        elif key == 'TRACKNUMBER':
            tags[keys.MP4_TRACK_ATOM] = [_parse_pair(values[0])]
        elif key == 'DISCNUMBER':
            tags[keys.MP4_DISC_ATOM] = [_parse_pair(values[0])]
        elif key == 'BPM':
            try:
                tags[keys.MP4_BPM_ATOM] = [int(float(v)) for v in values]
            except ValueError:
                raise UnsupportedOperation(f"BPM must be numeric, got {values!r}")
        elif key == 'COMPILATION':
            tags[keys.MP4_COMPILATION_ATOM] = values[0].strip().lower() in ('1', 'true', 'yes')
        else:
            for atom in self._atoms_for(key):
                del tags[atom]
            name = keys.MP4_FREEFORM_KEYS.get(key, key)
            tags[f"----:{Config.DEFAULT_NAMESPACE}:{name}"] = [
                mp4.MP4FreeForm(v.encode('utf-8')) for v in values]

    def _remove(self, key: str) -> bool:
        atoms = self._atoms_for(key)
        for atom in atoms:
            del self.tags[atom]
        return bool(atoms)

    def _clear(self) -> None:
        self.tags.clear()

    # ---------- Pictures ----------

    def _read_pictures(self) -> List[Picture]:
        out = []
        for cover in self.tags.get(keys.MP4_COVER_ATOM, []):
            data = bytes(cover)
            mime = _COVER_FORMATS.get(getattr(cover, 'imageformat', None)) or sniff_mime(data)
            # covr stores neither a description nor a picture type
            out.append(Picture(data=data, mime_type=mime, description='',
                               picture_type=DEFAULT_PICTURE_TYPE,
                               params={'imageformat': getattr(cover, 'imageformat', None)}))
        return out

    def _set_pictures(self, pictures: List[Picture]) -> None:
        covers = []
        for pic in pictures:
            mime = pic.mime_type or sniff_mime(pic.data)
            code = _COVER_CODES.get(mime)
            if code is None:
                raise UnsupportedOperation(f"MP4 cover art must be JPEG, PNG, GIF or BMP, got {mime!r}")
            covers.append(mp4.MP4Cover(pic.data, imageformat=code))
        if covers:
            self.tags[keys.MP4_COVER_ATOM] = covers
        elif keys.MP4_COVER_ATOM in self.tags:
            del self.tags[keys.MP4_COVER_ATOM]

    # ---------- Serialization ----------

    def commit(self, target: Union[str, Path]) -> None:
        self.host.save(target)

    def strip(self, target: Union[str, Path]) -> None:
        self.host.delete(target)
