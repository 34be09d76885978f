"""tagmux – one metadata view over every tag block in an audio file."""

__version__ = "0.1.0"

from .container import AudioContainer, open_container
from .errors import (
    TagError,
    FileNotFound,
    UnsupportedFormat,
    CorruptTag,
    TruncatedData,
    UnsupportedOperation,
    IndexOutOfRange,
    CapacityExceeded,
    TagIOError,
    PartialSerializationError,
)
from .model import BlockKind, ContainerKind, Picture, PropertyEntry, RatingInfo, AudioStreamInfo
from .pictures import PICTURE_TYPES
from .rating import rating_to_stars, stars_to_rating
from .unify import PriorityPolicy
from .utils import Config, setup_logging

__all__ = [
    "AudioContainer",
    "open_container",
    "BlockKind",
    "ContainerKind",
    "Picture",
    "PropertyEntry",
    "RatingInfo",
    "AudioStreamInfo",
    "PICTURE_TYPES",
    "PriorityPolicy",
    "rating_to_stars",
    "stars_to_rating",
    "Config",
    "setup_logging",
    "TagError",
    "FileNotFound",
    "UnsupportedFormat",
    "CorruptTag",
    "TruncatedData",
    "UnsupportedOperation",
    "IndexOutOfRange",
    "CapacityExceeded",
    "TagIOError",
    "PartialSerializationError",
]
