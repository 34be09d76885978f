"""
ID3v1 / ID3v1.1 trailer codec.

The block keeps the original 128 bytes and patches only the field slices a
caller changes, so untouched fields come back byte-identical on save.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

from mutagen.id3 import TCON

from ..cursor import read_region
from ..errors import CorruptTag, TagIOError, UnsupportedOperation
from ..model import BlockKind, PropertyEntry
from .base import TagBlock

logger = logging.getLogger(__name__)

TAG_SIZE = 128
NO_GENRE = 255

# (offset, length) of each text field within the trailer
_FIELDS = {
    'TITLE': (3, 30),
    'ARTIST': (33, 30),
    'ALBUM': (63, 30),
    'DATE': (93, 4),
    'COMMENT': (97, 30),
}
_TRACK_MARKER = 125
_TRACK = 126
_GENRE = 127


def _decode_field(raw: bytes) -> str:
    return raw.split(b'\x00', 1)[0].rstrip(b' ').decode('latin-1')


def _empty_tag() -> bytearray:
    raw = bytearray(TAG_SIZE)
    raw[0:3] = b'TAG'
    raw[_GENRE] = NO_GENRE
    return raw


class ID3v1Block(TagBlock):
    """Fixed-layout trailer: title, artist, album, year, comment, track (v1.1), genre."""

    kind = BlockKind.ID3V1

    def __init__(self, raw: Optional[bytes] = None):
        super().__init__(on_disk=raw is not None)
        if raw is None:
            self.raw = _empty_tag()
        else:
            if len(raw) != TAG_SIZE or raw[:3] != b'TAG':
                raise CorruptTag("ID3v1 trailer must be 128 bytes starting with 'TAG'")
            self.raw = bytearray(raw)
        self.original = bytes(self.raw) if raw is not None else None

    @classmethod
    def load(cls, path: Union[str, Path], offset: int) -> 'ID3v1Block':
        try:
            with open(path, 'rb') as f:
                cur = read_region(f, offset, TAG_SIZE)
        except OSError as e:
            raise TagIOError(f"Cannot read ID3v1 trailer of {path}: {e}") from e
        return cls(cur.read(TAG_SIZE))

    @property
    def is_v11(self) -> bool:
        return self.raw[_TRACK_MARKER] == 0 and self.raw[_TRACK] != 0

    @property
    def track(self) -> int:
        return self.raw[_TRACK] if self.is_v11 else 0

    @property
    def genre(self) -> Optional[str]:
        code = self.raw[_GENRE]
        if code < len(TCON.GENRES):
            return TCON.GENRES[code]
        return None

    def render(self) -> bytes:
        """The 128 bytes to place at the end of the file."""
        return bytes(self.raw)

    # ---------- Properties ----------

    def _text(self, key: str) -> str:
        offset, length = _FIELDS[key]
        if key == 'COMMENT' and self.is_v11:
            length = 28
        return _decode_field(bytes(self.raw[offset:offset + length]))

    def entries(self) -> List[PropertyEntry]:
        out = []
        for key in ('TITLE', 'ARTIST', 'ALBUM', 'DATE', 'COMMENT'):
            value = self._text(key)
            if value:
                out.append(self._entry(key, value))
        if self.track:
            out.append(self._entry('TRACKNUMBER', self.track))
        if self.genre is not None:
            out.append(self._entry('GENRE', self.genre))
        return out

    def _write_field(self, key: str, value: str) -> None:
        offset, length = _FIELDS[key]
        if key == 'COMMENT' and self.is_v11:
            length = 28
        encoded = value.encode('latin-1', errors='replace')[:length]
        self.raw[offset:offset + length] = encoded.ljust(length, b'\x00')

    def _set(self, key: str, values: List[str]) -> None:
        value = values[0]
        if len(values) > 1:
            logger.debug(f"ID3v1 holds a single {key} value, keeping {value!r}")
        if key in _FIELDS:
            self._write_field(key, value)
        elif key == 'TRACKNUMBER':
            try:
                track = int(value.split('/')[0])
            except ValueError:
                raise UnsupportedOperation(f"ID3v1 track must be numeric, got {value!r}")
            if not 0 < track < 256:
                raise UnsupportedOperation(f"ID3v1 track must be 1-255, got {track}")
            self.raw[_TRACK_MARKER] = 0
            self.raw[_TRACK] = track
        elif key == 'GENRE':
            self.raw[_GENRE] = self._genre_code(value)
        else:
            raise UnsupportedOperation(f"ID3v1 has no field for {key}")

    @staticmethod
    def _genre_code(value: str) -> int:
        if value.isdigit() and int(value) < len(TCON.GENRES):
            return int(value)
        lowered = value.strip().lower()
        for code, name in enumerate(TCON.GENRES):
            if name.lower() == lowered:
                return code
        logger.debug(f"Genre {value!r} is not in the ID3v1 genre list, storing none")
        return NO_GENRE

    def _remove(self, key: str) -> bool:
        if key in _FIELDS:
            if not self._text(key):
                return False
            self._write_field(key, '')
        elif key == 'TRACKNUMBER':
            if not self.track:
                return False
            self.raw[_TRACK_MARKER] = 0
            self.raw[_TRACK] = 0
        elif key == 'GENRE':
            if self.genre is None:
                return False
            self.raw[_GENRE] = NO_GENRE
        else:
            return False
        return True

    def _clear(self) -> None:
        self.raw = _empty_tag()

    @property
    def changed(self) -> bool:
        return self.original is None or bytes(self.raw) != self.original
