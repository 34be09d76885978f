"""
Container and tag block detection from signature bytes and structure.

The file extension is never consulted.
"""

import os
import uuid
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, FrozenSet, Optional, Set, Union

from .cursor import ByteCursor, read_region
from .errors import FileNotFound, TagIOError, TruncatedData, UnsupportedFormat
from .model import BlockKind, ContainerKind, OGG_CONTAINERS, TRAILER_CONTAINERS
from .utils import Config

logger = logging.getLogger(__name__)

ID3V1_SIZE = 128
APE_FOOTER_SIZE = 32


def _guid(text: str) -> bytes:
    """ASF GUIDs are stored with the first three fields little-endian."""
    return uuid.UUID(text).bytes_le


ASF_HEADER_GUID = _guid('75B22630-668E-11CF-A6D9-00AA0062CE6C')
ASF_CONTENT_DESCRIPTION_GUID = _guid('75B22633-668E-11CF-A6D9-00AA0062CE6C')
ASF_EXT_CONTENT_DESCRIPTION_GUID = _guid('D2D0A440-E307-11D2-97F0-00A0C95EA850')
ASF_HEADER_EXTENSION_GUID = _guid('5FBF03B5-A92E-11CF-8EE3-00C00C205365')
ASF_METADATA_GUID = _guid('C5F8CBEA-5BAF-4877-8467-AA8C44FA4CCA')
ASF_METADATA_LIBRARY_GUID = _guid('44231C94-9498-49D1-A141-1D134E457054')

OGG_CODECS = (
    (b'\x01vorbis', ContainerKind.OGG_VORBIS),
    (b'OpusHead', ContainerKind.OGG_OPUS),
    (b'Speex   ', ContainerKind.OGG_SPEEX),
    (b'\x7fFLAC', ContainerKind.OGG_FLAC),
)


@dataclass
class Detection:
    """Result of sniffing one file."""
    container: ContainerKind
    blocks: FrozenSet[BlockKind] = field(default_factory=frozenset)
    file_size: int = 0
    # Total bytes taken by leading ID3v2 tags (audio starts here)
    id3v2_size: int = 0
    id3v1_offset: Optional[int] = None

    @property
    def has_id3v1(self) -> bool:
        return self.id3v1_offset is not None


def id3v2_tag_size(head: bytes) -> int:
    """
    Return the full size of an ID3v2 tag at the start of ``head``, or 0.

    Size = 10-byte header + synchsafe body size + optional 10-byte footer.
    """
    if len(head) < 10 or head[:3] != b'ID3':
        return 0
    cur = ByteCursor(head, 3, 10)
    major = cur.u8()
    cur.skip(1)
    flags = cur.u8()
    if major not in (2, 3, 4):
        return 0
    try:
        size = cur.synchsafe32()
    except TruncatedData:
        return 0
    footer = 10 if (major == 4 and flags & 0x10) else 0
    return 10 + size + footer


def is_mpeg_frame_header(header: bytes) -> bool:
    """Check the four bytes of an MPEG audio frame header for valid field values."""
    if len(header) < 4 or header[0] != 0xFF or (header[1] & 0xE0) != 0xE0:
        return False
    version = (header[1] >> 3) & 0x03
    layer = (header[1] >> 1) & 0x03
    bitrate_index = (header[2] >> 4) & 0x0F
    samplerate_index = (header[2] >> 2) & 0x03
    return (version != 1 and layer != 0
            and bitrate_index not in (0, 15) and samplerate_index != 3)


def find_mpeg_sync(data: bytes, limit: int) -> Optional[int]:
    """Offset of the first plausible MPEG frame header within ``limit`` bytes."""
    end = min(len(data) - 3, limit)
    idx = data.find(b'\xff', 0, max(end, 0))
    while 0 <= idx < end:
        if is_mpeg_frame_header(data[idx:idx + 4]):
            return idx
        idx = data.find(b'\xff', idx + 1, end)
    return None


def _ogg_codec(head: bytes) -> Optional[ContainerKind]:
    # First page: 27-byte header, segment table, then the codec's first packet
    if len(head) < 28:
        return None
    segments = head[26]
    packet = head[27 + segments:27 + segments + 8]
    for magic, kind in OGG_CODECS:
        if packet.startswith(magic):
            return kind
    return None


def container_from_signature(head: bytes) -> Optional[ContainerKind]:
    """Match the bytes at the start of the audio (after any ID3v2) against known signatures."""
    if head[:4] == b'fLaC':
        return ContainerKind.FLAC
    if head[:4] == b'OggS':
        return _ogg_codec(head)
    if head[4:8] == b'ftyp':
        return ContainerKind.MP4
    if head[:16] == ASF_HEADER_GUID:
        return ContainerKind.ASF
    if head[:4] == b'RIFF' and head[8:12] == b'WAVE':
        return ContainerKind.WAV
    if head[:4] == b'FORM' and head[8:12] in (b'AIFF', b'AIFC'):
        return ContainerKind.AIFF
    if head[:4] == b'MAC ':
        return ContainerKind.MONKEYS_AUDIO
    if head[:4] == b'wvpk':
        return ContainerKind.WAVPACK
    if head[:4] == b'MPCK' or head[:3] == b'MP+':
        return ContainerKind.MUSEPACK
    return None


# ---------- Structural walks ----------

def _flac_has_tags(f: BinaryIO, offset: int) -> bool:
    """Walk FLAC metadata blocks looking for VORBIS_COMMENT (4) or PICTURE (6)."""
    pos = offset + 4
    while True:
        cur = read_region(f, pos, 4)
        if cur.remaining() < 4:
            return False
        header = cur.u8()
        length = cur.u24be()
        if (header & 0x7F) in (4, 6):
            return True
        if header & 0x80:
            return False
        pos += 4 + length


def _mp4_find(f: BinaryIO, start: int, end: int, name: bytes) -> Optional[tuple]:
    """Return (payload_start, atom_end) of the first child atom called ``name``."""
    pos = start
    while pos + 8 <= end:
        cur = read_region(f, pos, 16)
        if cur.remaining() < 8:
            return None
        size = cur.u32be()
        kind = cur.read(4)
        header = 8
        if size == 1:
            if cur.remaining() < 8:
                return None
            size = cur.u64be()
            header = 16
        elif size == 0:
            size = end - pos
        if size < header:
            return None
        if kind == name:
            return pos + header, pos + size
        pos += size
    return None


def _mp4_has_tags(f: BinaryIO, size: int) -> bool:
    moov = _mp4_find(f, 0, size, b'moov')
    if moov is None:
        return False
    udta = _mp4_find(f, moov[0], moov[1], b'udta')
    if udta is None:
        return False
    meta = _mp4_find(f, udta[0], udta[1], b'meta')
    if meta is None:
        return False
    # meta is a full atom: 4 bytes of version/flags precede its children
    ilst = _mp4_find(f, meta[0] + 4, meta[1], b'ilst')
    return ilst is not None and ilst[1] > ilst[0]


def _asf_has_tags(f: BinaryIO) -> bool:
    cur = read_region(f, 0, 30)
    cur.skip(16)
    header_size = cur.u64le()
    num_objects = cur.u32le()
    pos = 30
    for _ in range(num_objects):
        if pos + 24 > header_size:
            break
        obj = read_region(f, pos, 24)
        guid = obj.read(16)
        obj_size = obj.u64le()
        if guid in (ASF_CONTENT_DESCRIPTION_GUID, ASF_EXT_CONTENT_DESCRIPTION_GUID):
            return True
        if guid == ASF_HEADER_EXTENSION_GUID and obj_size >= 46:
            # Reserved GUID + u16, then the size of the child objects
            ext = read_region(f, pos + 24, obj_size - 24)
            ext.skip(18)
            children = ext.sub(ext.u32le())
            while children.remaining() >= 24:
                child_guid = children.read(16)
                child_size = children.u64le()
                if child_guid in (ASF_METADATA_GUID, ASF_METADATA_LIBRARY_GUID):
                    return True
                if child_size < 24:
                    break
                children.skip(min(child_size - 24, children.remaining()))
        if obj_size < 24:
            break
        pos += obj_size
    return False


def _iff_has_id3(f: BinaryIO, size: int, little_endian: bool) -> bool:
    """Walk RIFF (little-endian sizes) or IFF (big-endian) chunks for an ID3 chunk."""
    pos = 12
    while pos + 8 <= size:
        cur = read_region(f, pos, 8)
        chunk_id = cur.read(4)
        chunk_size = cur.u32le() if little_endian else cur.u32be()
        if chunk_id.upper() == b'ID3 ':
            return True
        pos += 8 + chunk_size + (chunk_size & 1)
    return False


def _trailing_blocks(f: BinaryIO, size: int, audio_start: int) -> tuple:
    """Return (id3v1_offset or None, ape_present) for trailer-style containers."""
    id3v1_offset = None
    if size - ID3V1_SIZE >= audio_start:
        if read_region(f, size - ID3V1_SIZE, 3).peek(3) == b'TAG':
            id3v1_offset = size - ID3V1_SIZE
    tail_end = id3v1_offset if id3v1_offset is not None else size
    ape_present = False
    if tail_end - APE_FOOTER_SIZE >= audio_start:
        ape_present = read_region(f, tail_end - APE_FOOTER_SIZE, 8).peek(8) == b'APETAGEX'
    if not ape_present and read_region(f, audio_start, 8).peek(8) == b'APETAGEX':
        ape_present = True
    return id3v1_offset, ape_present


def detect(path: Union[str, Path]) -> Detection:
    """
    Identify the container kind and every tag block physically present.

    Raises:
        FileNotFound: path is missing or not a regular file
        UnsupportedFormat: no signature matched
        TagIOError: the file could not be read
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFound(f"No such file: {path}")

    blocks: Set[BlockKind] = set()
    try:
        with open(path, 'rb') as f:
            size = os.fstat(f.fileno()).st_size
            head = f.read(Config.SNIFF_SIZE)

            # Possibly several stacked ID3v2 tags
            id3v2_size = 0
            while True:
                tag_size = id3v2_tag_size(head)
                if not tag_size:
                    break
                id3v2_size += tag_size
                head = read_region(f, id3v2_size, Config.SNIFF_SIZE).peek(Config.SNIFF_SIZE)

            container = container_from_signature(head)
            if container is None:
                scan = head if len(head) >= Config.SYNC_SCAN_LIMIT else \
                    read_region(f, id3v2_size, Config.SYNC_SCAN_LIMIT + 4).peek(Config.SYNC_SCAN_LIMIT + 4)
                if find_mpeg_sync(scan, Config.SYNC_SCAN_LIMIT) is not None or id3v2_size:
                    container = ContainerKind.MPEG
            if container is None:
                raise UnsupportedFormat(f"Unrecognised audio container: {path}")

            detection = Detection(container=container, file_size=size, id3v2_size=id3v2_size)

            if container in TRAILER_CONTAINERS:
                if container is ContainerKind.MPEG and id3v2_size:
                    blocks.add(BlockKind.ID3V2)
                id3v1_offset, ape_present = _trailing_blocks(f, size, id3v2_size)
                if id3v1_offset is not None:
                    blocks.add(BlockKind.ID3V1)
                    detection.id3v1_offset = id3v1_offset
                if ape_present:
                    blocks.add(BlockKind.APE)
            elif container is ContainerKind.FLAC:
                if _flac_has_tags(f, id3v2_size):
                    blocks.add(BlockKind.XIPH)
            elif container in OGG_CONTAINERS:
                # The comment header is mandatory in every Ogg codec we handle
                blocks.add(BlockKind.XIPH)
            elif container is ContainerKind.MP4:
                if _mp4_has_tags(f, size):
                    blocks.add(BlockKind.MP4)
            elif container is ContainerKind.ASF:
                if _asf_has_tags(f):
                    blocks.add(BlockKind.ASF)
            elif container in (ContainerKind.WAV, ContainerKind.AIFF):
                if _iff_has_id3(f, size, little_endian=container is ContainerKind.WAV):
                    blocks.add(BlockKind.ID3V2)
    except TruncatedData as e:
        # Structure walks ran off a truncated file; the signature still identified it
        logger.warning(f"Truncated structure while scanning {path}: {e}")
        return Detection(container=container, blocks=frozenset(blocks), file_size=size,
                         id3v2_size=id3v2_size)
    except OSError as e:
        raise TagIOError(f"Cannot read {path}: {e}") from e

    detection.blocks = frozenset(blocks)
    logger.debug(f"Detected {container} with blocks {sorted(b.value for b in blocks)} in {path.name}")
    return detection
