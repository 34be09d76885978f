"""
Exception hierarchy for tagmux.

Open failures raise; per-block parse failures are downgraded to an absent
block; save failures are all-or-nothing.
"""


class TagError(Exception):
    """Base exception for tagmux errors."""
    pass


class FileNotFound(TagError, FileNotFoundError):
    """Raised when the path does not exist or is not a regular file."""
    pass


class UnsupportedFormat(TagError):
    """Raised when no known container signature matches."""
    pass


class CorruptTag(TagError):
    """Raised when a tag block fails to parse."""
    pass


class TruncatedData(CorruptTag):
    """Raised when a read runs past the end of a byte region."""
    pass


class UnsupportedOperation(TagError):
    """Raised when a block or container cannot perform the requested operation."""
    pass


class IndexOutOfRange(TagError, IndexError):
    """Raised when a picture index is outside the current list."""
    pass


class CapacityExceeded(TagError):
    """Raised when a format cannot hold another picture or value."""
    pass


class TagIOError(TagError, OSError):
    """Raised when reading, staging or replacing the file fails."""
    pass


class PartialSerializationError(TagError):
    """Raised when a block fails to serialize into the staged file."""
    pass
