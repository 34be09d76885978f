"""
Embedded picture handling: the picture type vocabulary, MIME sniffing,
the binary layouts that mutagen leaves to the caller (WM/Picture, APE cover
items) and the PictureStore that presents every picture-capable block as
one indexed list.
"""

import logging
from typing import List, Optional, Tuple

from .cursor import ByteCursor, ByteWriter
from .errors import CorruptTag, IndexOutOfRange, TagError
from .model import Picture

logger = logging.getLogger(__name__)

# ID3v2 APIC picture types, indexed by their numeric code
PICTURE_TYPES = [
    "Other",
    "File Icon",
    "Other File Icon",
    "Front Cover",
    "Back Cover",
    "Leaflet Page",
    "Media",
    "Lead Artist",
    "Artist",
    "Conductor",
    "Band",
    "Composer",
    "Lyricist",
    "Recording Location",
    "During Recording",
    "During Performance",
    "Movie Screen Capture",
    "Coloured Fish",
    "Illustration",
    "Band Logo",
    "Publisher Logo",
]

DEFAULT_PICTURE_TYPE = "Front Cover"

# APE cover item names use their own spelling of the same vocabulary
APE_COVER_NAMES = [
    "Other", "Icon", "Other Icon", "Front", "Back", "Leaflet", "Media",
    "Lead Artist", "Artist", "Conductor", "Band", "Composer", "Lyricist",
    "Recording Location", "During Recording", "During Performance",
    "Video Capture", "Fish", "Illustration", "Band Logotype", "Publisher Logotype",
]

_IMAGE_MAGIC = (
    (b'\xff\xd8\xff', 'image/jpeg'),
    (b'\x89PNG\r\n\x1a\n', 'image/png'),
    (b'GIF87a', 'image/gif'),
    (b'GIF89a', 'image/gif'),
    (b'BM', 'image/bmp'),
)


def picture_type_code(name: str) -> int:
    """Numeric code for a picture type name; unknown names map to 0 (Other)."""
    try:
        return PICTURE_TYPES.index(name)
    except ValueError:
        return 0


def picture_type_name(code: int) -> str:
    """Name for a numeric picture type; out-of-range codes read as Other."""
    code = int(code)
    if 0 <= code < len(PICTURE_TYPES):
        return PICTURE_TYPES[code]
    return PICTURE_TYPES[0]


def sniff_mime(data: bytes) -> str:
    """Guess an image MIME type from magic bytes; empty string when unknown."""
    for magic, mime in _IMAGE_MAGIC:
        if data.startswith(magic):
            return mime
    if data[:4] == b'RIFF' and data[8:12] == b'WEBP':
        return 'image/webp'
    return ''


# ---------- WM/Picture (ASF) ----------

def decode_wm_picture(payload: bytes) -> Picture:
    """
    Decode a WM/Picture attribute value.

    Layout: type (u8), data length (u32 LE), MIME (UTF-16LE, NUL-terminated),
    description (UTF-16LE, NUL-terminated), image data.
    """
    cur = ByteCursor(payload)
    code = cur.u8()
    size = cur.u32le()
    mime = cur.cstring('utf-16-le')
    description = cur.cstring('utf-16-le')
    if size > cur.remaining():
        raise CorruptTag(f"WM/Picture declares {size} bytes, only {cur.remaining()} present")
    data = cur.read(size)
    return Picture(data=data, mime_type=mime or sniff_mime(data), description=description,
                   picture_type=picture_type_name(code))


def encode_wm_picture(picture: Picture) -> bytes:
    return (ByteWriter()
            .u8(picture_type_code(picture.picture_type))
            .u32le(len(picture.data))
            .cstring(picture.mime_type or sniff_mime(picture.data), 'utf-16-le')
            .cstring(picture.description, 'utf-16-le')
            .raw(picture.data)
            .getvalue())


# ---------- APE cover art items ----------

def ape_cover_key(picture_type: str) -> str:
    return f"Cover Art ({APE_COVER_NAMES[picture_type_code(picture_type)]})"


def ape_cover_type(key: str) -> str:
    """Picture type name from an item key like 'Cover Art (Front)'."""
    inner = key[key.find('(') + 1:key.rfind(')')].strip().lower()
    for code, name in enumerate(APE_COVER_NAMES):
        if name.lower() == inner:
            return PICTURE_TYPES[code]
    return PICTURE_TYPES[0]


def decode_ape_cover(key: str, payload: bytes) -> Picture:
    """APE cover items are ``description NUL data``; the MIME type is not stored."""
    cur = ByteCursor(payload)
    description = cur.cstring('utf-8')
    data = cur.read(cur.remaining())
    return Picture(data=data, mime_type=sniff_mime(data), description=description,
                   picture_type=ape_cover_type(key))


def encode_ape_cover(picture: Picture) -> bytes:
    return ByteWriter().cstring(picture.description, 'utf-8').raw(picture.data).getvalue()


# ---------- Unified picture list ----------

class PictureStore:
    """
    Picture operations over every picture-capable block of a container.

    ``list()`` concatenates the blocks in priority order, designated block
    first; indices refer to that concatenation. All changes stay in the
    blocks' in-memory models until the container is saved.
    """

    def __init__(self, container):
        self.container = container

    def _blocks(self) -> list:
        return self.container.picture_blocks()

    def list(self) -> List[Picture]:
        out = []
        for block in self._blocks():
            out.extend(block.pictures())
        return out

    def count(self) -> int:
        return len(self.list())

    def _locate(self, index: int) -> Tuple[object, List[Picture], int]:
        if index < 0:
            raise IndexOutOfRange(f"Picture index {index} is negative")
        offset = index
        for block in self._blocks():
            pics = block.pictures()
            if offset < len(pics):
                return block, pics, offset
            offset -= len(pics)
        raise IndexOutOfRange(f"Picture index {index} out of range")

    def add(self, picture: Picture) -> None:
        """Append to the designated picture block, creating it if needed."""
        block = self.container.designated_picture_block()
        if not picture.mime_type:
            picture.mime_type = sniff_mime(picture.data)
        block.set_pictures(block.pictures() + [picture])

    def remove_at(self, index: int) -> bool:
        try:
            block, pics, local = self._locate(index)
        except IndexOutOfRange as e:
            logger.debug(f"remove_at ignored: {e}")
            return False
        del pics[local]
        block.set_pictures(pics)
        return True

    def replace_at(self, index: int, picture: Picture) -> bool:
        try:
            block, pics, local = self._locate(index)
        except IndexOutOfRange as e:
            logger.debug(f"replace_at ignored: {e}")
            return False
        if not picture.mime_type:
            picture.mime_type = sniff_mime(picture.data)
        pics[local] = picture
        try:
            block.set_pictures(pics)
        except TagError as e:
            logger.warning(f"Cannot replace picture {index} in {block.kind} tag: {e}")
            return False
        return True

    def remove_all_of_type(self, picture_type: str) -> int:
        """Remove every picture whose type string equals ``picture_type`` exactly."""
        removed = 0
        for block in self._blocks():
            pics = block.pictures()
            kept = [p for p in pics if p.picture_type != picture_type]
            if len(kept) != len(pics):
                removed += len(pics) - len(kept)
                block.set_pictures(kept)
        return removed

    def remove_all(self) -> None:
        for block in self._blocks():
            if block.pictures():
                block.set_pictures([])

    @property
    def artwork(self) -> Optional[Picture]:
        pics = self.list()
        return pics[0] if pics else None

    def replace_all(self, pictures: List[Picture]) -> None:
        """Drop every picture, then store ``pictures`` in the designated block."""
        block = self.container.designated_picture_block()
        for picture in pictures:
            if not picture.mime_type:
                picture.mime_type = sniff_mime(picture.data)
        # Validate against the designated block before touching the others
        block.set_pictures(list(pictures))
        for other in self._blocks():
            if other is not block and other.pictures():
                other.set_pictures([])
