"""
Data model shared by the parsers, the unifier and the save engine.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class BlockKind(Enum):
    """Physical tag block formats. The value is the source name shown to callers."""
    ID3V1 = "ID3v1"
    ID3V2 = "ID3v2"
    XIPH = "Xiph"
    APE = "APE"
    MP4 = "MP4"
    ASF = "ASF"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, name: Any) -> 'BlockKind':
        """Accept a BlockKind or its source name in any case."""
        if isinstance(name, cls):
            return name
        lowered = str(name).strip().lower()
        for kind in cls:
            if kind.value.lower() == lowered or kind.name.lower() == lowered:
                return kind
        raise ValueError(f"Unknown tag block kind: {name!r}")


class ContainerKind(Enum):
    """Audio container formats recognised by signature."""
    MPEG = "MPEG"
    FLAC = "FLAC"
    OGG_VORBIS = "Ogg Vorbis"
    OGG_OPUS = "Ogg Opus"
    OGG_SPEEX = "Ogg Speex"
    OGG_FLAC = "Ogg FLAC"
    MP4 = "MP4"
    ASF = "ASF"
    WAV = "WAV"
    AIFF = "AIFF"
    MONKEYS_AUDIO = "Monkey's Audio"
    WAVPACK = "WavPack"
    MUSEPACK = "Musepack"

    def __str__(self) -> str:
        return self.value


OGG_CONTAINERS = frozenset({
    ContainerKind.OGG_VORBIS, ContainerKind.OGG_OPUS,
    ContainerKind.OGG_SPEEX, ContainerKind.OGG_FLAC,
})

# Containers whose tags sit in front of / behind the audio rather than inside it
TRAILER_CONTAINERS = frozenset({
    ContainerKind.MPEG, ContainerKind.MONKEYS_AUDIO,
    ContainerKind.WAVPACK, ContainerKind.MUSEPACK,
})


@dataclass(frozen=True)
class PropertyEntry:
    """
    One raw value with its source attribution.

    ``native`` entries have no canonical translation; their key is the
    format's own key and they are only surfaced through raw listings.
    """
    source: BlockKind
    key: str
    value: str
    native: bool = False

    def as_dict(self) -> Dict[str, str]:
        return {'source': self.source.value, 'key': self.key, 'value': self.value}


@dataclass
class Picture:
    """Embedded picture. ``picture_type`` is an open string; ``params`` carries encoding hints."""
    data: bytes
    mime_type: str = ""
    description: str = ""
    picture_type: str = "Front Cover"
    params: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def __repr__(self) -> str:
        return (f"Picture(type={self.picture_type!r}, mime={self.mime_type!r}, "
                f"description={self.description!r}, {len(self.data)} bytes)")


@dataclass
class RatingInfo:
    """Rating on the 0..255 scale (None when unset) and an absolute play count."""
    rating: Optional[int] = None
    play_count: int = 0


@dataclass
class AudioStreamInfo:
    """Read-only stream properties taken from the container headers."""
    length: float = 0.0
    bitrate: int = 0
    sample_rate: int = 0
    channels: int = 0

    @property
    def duration(self) -> int:
        return int(self.length)

    @property
    def formatted_duration(self) -> str:
        total = self.duration
        hours, rem = divmod(total, 3600)
        minutes, seconds = divmod(rem, 60)
        if hours:
            return f"{hours}:{minutes:02d}:{seconds:02d}"
        return f"{minutes}:{seconds:02d}"

    @classmethod
    def from_mutagen(cls, info: Any) -> 'AudioStreamInfo':
        """Build from a mutagen StreamInfo; mutagen reports bitrate in bits per second."""
        if info is None:
            return cls()
        return cls(
            length=float(getattr(info, 'length', 0.0) or 0.0),
            bitrate=int(getattr(info, 'bitrate', 0) or 0) // 1000,
            sample_rate=int(getattr(info, 'sample_rate', 0) or 0),
            channels=int(getattr(info, 'channels', 0) or 0),
        )
