"""
Pytest configuration and shared fixtures.

Audio files are synthesized byte by byte: just enough container structure
for detection and mutagen to accept them, with silent or empty payloads.
"""

import struct
from pathlib import Path

import pytest
import mutagen.apev2 as apev2
import mutagen.id3 as id3
from mutagen.ogg import OggPage

from tagmux.utils import Config

# ---------- Constants ----------

# MPEG-1 Layer III, 128 kbps, 44.1 kHz, no padding: 417-byte frames
MPEG_FRAME = b'\xff\xfb\x90\x00' + b'\x00' * 413
MPEG_FRAME_COUNT = 20

ASF_HEADER_GUID = bytes.fromhex('3026b2758e66cf11a6d900aa0062ce6c')
ASF_DATA_GUID = bytes.fromhex('3626b2758e66cf11a6d900aa0062ce6c')

# Smallest images the MIME sniffer recognises
JPEG_BYTES = b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00\xff\xd9'
PNG_BYTES = b'\x89PNG\r\n\x1a\n' + b'\x00\x00\x00\rIHDR' + b'\x00' * 17
GIF_BYTES = b'GIF89a\x01\x00\x01\x00\x00\x00\x00;'

TAGS = {
    "title": "Test Title",
    "artist": "Test Artist",
    "album": "Test Album",
    "date": "2025",
    "genre": "Rock",
    "tracknumber": "1",
}

# ---------- Builders ----------

def id3v1_bytes(title="", artist="", album="", year="", comment="", track=0, genre=255) -> bytes:
    """128-byte ID3v1.1 trailer."""
    def field(text, size):
        return text.encode('latin-1')[:size].ljust(size, b'\x00')
    raw = b'TAG' + field(title, 30) + field(artist, 30) + field(album, 30) + field(year, 4)
    if track:
        raw += field(comment, 28) + b'\x00' + bytes([track])
    else:
        raw += field(comment, 30)
    return raw + bytes([genre])


def build_mp3(path: Path, frames: list = None, v1: bytes = None, ape: bool = False) -> Path:
    """Silent MPEG stream, optionally with a leading ID3v2.4 tag, APEv2 and an ID3v1 trailer."""
    path.write_bytes(MPEG_FRAME * MPEG_FRAME_COUNT)
    if frames:
        tags = id3.ID3()
        for frame in frames:
            tags.add(frame)
        tags.save(path, v1=id3.ID3v1SaveOptions.REMOVE)
    if ape:
        tag = apev2.APEv2()
        tag['Title'] = 'APE Title'
        tag['Artist'] = 'APE Artist'
        tag['Catalog'] = 'CAT-1'
        tag.save(path)
    if v1 is not None:
        with open(path, 'ab') as f:
            f.write(v1)
    return path


def build_flac(path: Path) -> Path:
    """One STREAMINFO block (2 ch, 16 bit, 44.1 kHz, 1 s) and a few bytes of 'frames'."""
    packed = (44100 << 44) | (1 << 41) | (15 << 36) | 44100
    streaminfo = struct.pack('>HH', 4096, 4096) + b'\x00' * 6 + struct.pack('>Q', packed) + b'\x00' * 16
    header = struct.pack('>B', 0x80) + len(streaminfo).to_bytes(3, 'big')
    path.write_bytes(b'fLaC' + header + streaminfo + b'\xff\xf8' + b'\x00' * 64)
    return path


def _ogg_page(packets, sequence, position=0, first=False, last=False) -> bytes:
    page = OggPage()
    page.packets = packets
    page.serial = 0x7A6D
    page.sequence = sequence
    page.position = position
    page.first = first
    page.last = last
    return page.write()


def build_ogg_vorbis(path: Path) -> Path:
    """Identification, comment and setup headers followed by one audio page."""
    ident = b'\x01vorbis' + struct.pack('<IBIiiiBB', 0, 2, 44100, 0, 128000, 0, 0xB8, 1)
    vendor = b'tagmux'
    comment = b'\x03vorbis' + struct.pack('<I', len(vendor)) + vendor + struct.pack('<I', 0) + b'\x01'
    setup = b'\x05vorbis' + b'\x00' * 16
    data = (_ogg_page([ident], 0, first=True)
            + _ogg_page([comment, setup], 1)
            + _ogg_page([b'\x00' * 64], 2, position=44100, last=True))
    path.write_bytes(data)
    return path


def _atom(name: bytes, payload: bytes) -> bytes:
    return struct.pack('>I', 8 + len(payload)) + name + payload


def build_mp4(path: Path) -> Path:
    """ftyp, a moov holding only mvhd (1000 units at 1000/s), and an mdat."""
    ftyp = _atom(b'ftyp', b'M4A \x00\x00\x00\x00M4A mp42isom')
    mvhd_payload = b'\x00\x00\x00\x00' + b'\x00' * 8 + struct.pack('>II', 1000, 1000) + b'\x00' * 80
    moov = _atom(b'moov', _atom(b'mvhd', mvhd_payload))
    mdat = _atom(b'mdat', b'\x00' * 128)
    path.write_bytes(ftyp + moov + mdat)
    return path


def build_asf(path: Path) -> Path:
    """Header object with no children, then an empty data object."""
    header = ASF_HEADER_GUID + struct.pack('<QI', 30, 0) + b'\x01\x02'
    data = ASF_DATA_GUID + struct.pack('<Q', 50) + b'\x00' * 26
    path.write_bytes(header + data)
    return path


def build_wav(path: Path) -> Path:
    """16-bit stereo PCM, 44.1 kHz, 0.1 s of silence."""
    samples = b'\x00' * 17640
    fmt = b'fmt ' + struct.pack('<IHHIIHH', 16, 1, 2, 44100, 176400, 4, 16)
    data = b'data' + struct.pack('<I', len(samples)) + samples
    body = b'WAVE' + fmt + data
    path.write_bytes(b'RIFF' + struct.pack('<I', len(body)) + body)
    return path

# ---------- Fixtures ----------

@pytest.fixture(autouse=True)
def restore_config():
    """Each test starts from the default configuration."""
    saved = {k: v for k, v in vars(Config).items() if k.isupper()}
    yield
    for key, value in saved.items():
        setattr(Config, key, value)


@pytest.fixture
def mp3_file(tmp_path):
    return build_mp3(tmp_path / "plain.mp3")


@pytest.fixture
def tagged_mp3(tmp_path):
    """MPEG with ID3v2 (title, artist, album) and an ID3v1 trailer that disagrees on title."""
    frames = [
        id3.TIT2(encoding=3, text=["ID3v2 Title"]),
        id3.TPE1(encoding=3, text=[TAGS["artist"]]),
        id3.TALB(encoding=3, text=[TAGS["album"]]),
    ]
    v1 = id3v1_bytes(title="ID3v1 Title", artist=TAGS["artist"], year="1999", track=7, genre=17)
    return build_mp3(tmp_path / "tagged.mp3", frames=frames, v1=v1)


@pytest.fixture
def flac_file(tmp_path):
    return build_flac(tmp_path / "test.flac")


@pytest.fixture
def ogg_file(tmp_path):
    return build_ogg_vorbis(tmp_path / "test.ogg")


@pytest.fixture
def mp4_file(tmp_path):
    return build_mp4(tmp_path / "test.m4a")


@pytest.fixture
def asf_file(tmp_path):
    return build_asf(tmp_path / "test.wma")


@pytest.fixture
def wav_file(tmp_path):
    return build_wav(tmp_path / "test.wav")


@pytest.fixture(params=["mp3", "flac", "ogg", "m4a", "wma", "wav"])
def any_audio(request, tmp_path):
    """Parametrized fixture yielding one untagged file per supported container."""
    builders = {
        "mp3": build_mp3,
        "flac": build_flac,
        "ogg": build_ogg_vorbis,
        "m4a": build_mp4,
        "wma": build_asf,
        "wav": build_wav,
    }
    return builders[request.param](tmp_path / f"test.{request.param}")


@pytest.fixture
def jpeg():
    return JPEG_BYTES


@pytest.fixture
def png():
    return PNG_BYTES
