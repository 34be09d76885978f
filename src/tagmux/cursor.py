"""
Bounds-checked reading and writing of binary structures.

Used for the structures mutagen does not expose as standalone blocks:
container signatures, ID3v1 trailers, WM/Picture payloads and APE cover items.
"""

import os
import struct
from typing import BinaryIO, Optional

from .errors import TruncatedData


class ByteCursor:
    """
    Sequential reader over a region of a bytes object.

    Reads never run past ``end``; doing so raises TruncatedData, which
    callers treat as a corrupt tag.
    """

    def __init__(self, data: bytes, start: int = 0, end: Optional[int] = None):
        self.data = data
        self.start = start
        self.end = len(data) if end is None else min(end, len(data))
        self.pos = start

    def tell(self) -> int:
        return self.pos - self.start

    def seek(self, offset: int) -> None:
        target = self.start + offset
        if offset < 0 or target > self.end:
            raise TruncatedData(f"Seek to {offset} outside region of {self.end - self.start} bytes")
        self.pos = target

    def remaining(self) -> int:
        return self.end - self.pos

    def _take(self, n: int) -> bytes:
        if n < 0 or self.pos + n > self.end:
            raise TruncatedData(f"Wanted {n} bytes at offset {self.tell()}, {self.remaining()} left")
        chunk = self.data[self.pos:self.pos + n]
        self.pos += n
        return chunk

    def read(self, n: int) -> bytes:
        return self._take(n)

    def peek(self, n: int) -> bytes:
        """Return up to n bytes without advancing."""
        return self.data[self.pos:min(self.pos + n, self.end)]

    def skip(self, n: int) -> None:
        self._take(n)

    def sub(self, n: int) -> 'ByteCursor':
        """Return a child cursor over the next n bytes and advance past them."""
        if n < 0 or self.pos + n > self.end:
            raise TruncatedData(f"Child region of {n} bytes exceeds {self.remaining()} left")
        child = ByteCursor(self.data, self.pos, self.pos + n)
        self.pos += n
        return child

    def _unpack(self, fmt: str, size: int) -> int:
        return struct.unpack(fmt, self._take(size))[0]

    def u8(self) -> int:
        return self._unpack('B', 1)

    def u16be(self) -> int:
        return self._unpack('>H', 2)

    def u16le(self) -> int:
        return self._unpack('<H', 2)

    def u24be(self) -> int:
        hi, lo = struct.unpack('>BH', self._take(3))
        return (hi << 16) | lo

    def u32be(self) -> int:
        return self._unpack('>I', 4)

    def u32le(self) -> int:
        return self._unpack('<I', 4)

    def u64be(self) -> int:
        return self._unpack('>Q', 8)

    def u64le(self) -> int:
        return self._unpack('<Q', 8)

    def synchsafe32(self) -> int:
        """Read a 28-bit integer stored in four 7-bit bytes (ID3v2 sizes)."""
        raw = self._take(4)
        if any(b & 0x80 for b in raw):
            raise TruncatedData(f"Invalid synchsafe integer {raw!r}")
        return (raw[0] << 21) | (raw[1] << 14) | (raw[2] << 7) | raw[3]

    def cstring(self, encoding: str = 'latin-1') -> str:
        """
        Read a NUL-terminated string.

        UTF-16 strings end at an aligned double NUL; everything else at the
        first NUL byte.
        """
        wide = encoding.lower().replace('-', '').replace('_', '') in ('utf16', 'utf16le', 'utf16be')
        if wide:
            idx = self.pos
            while idx + 1 < self.end:
                if self.data[idx] == 0 and self.data[idx + 1] == 0:
                    break
                idx += 2
            else:
                raise TruncatedData("Unterminated UTF-16 string")
            raw = self._take(idx - self.pos)
            self.skip(2)
        else:
            idx = self.data.find(b'\x00', self.pos, self.end)
            if idx < 0:
                raise TruncatedData("Unterminated string")
            raw = self._take(idx - self.pos)
            self.skip(1)
        return raw.decode(encoding, errors='replace')


class ByteWriter:
    """Append-only builder, the write-side counterpart of ByteCursor."""

    def __init__(self):
        self._parts = []

    def u8(self, value: int) -> 'ByteWriter':
        self._parts.append(struct.pack('B', value))
        return self

    def u16le(self, value: int) -> 'ByteWriter':
        self._parts.append(struct.pack('<H', value))
        return self

    def u32be(self, value: int) -> 'ByteWriter':
        self._parts.append(struct.pack('>I', value))
        return self

    def u32le(self, value: int) -> 'ByteWriter':
        self._parts.append(struct.pack('<I', value))
        return self

    def raw(self, data: bytes) -> 'ByteWriter':
        self._parts.append(bytes(data))
        return self

    def cstring(self, text: str, encoding: str = 'latin-1') -> 'ByteWriter':
        wide = encoding.lower().replace('-', '').replace('_', '') in ('utf16', 'utf16le', 'utf16be')
        self._parts.append(text.encode(encoding) + (b'\x00\x00' if wide else b'\x00'))
        return self

    def getvalue(self) -> bytes:
        return b''.join(self._parts)


def read_region(fileobj: BinaryIO, offset: int, size: int) -> ByteCursor:
    """
    Read ``size`` bytes at ``offset`` into a cursor.

    A negative offset counts back from the end of the file. Short reads are
    not an error here; the cursor simply covers fewer bytes.
    """
    if offset < 0:
        fileobj.seek(0, os.SEEK_END)
        offset = max(0, fileobj.tell() + offset)
    fileobj.seek(offset)
    return ByteCursor(fileobj.read(size))
