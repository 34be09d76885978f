"""
Common interface of the per-format tag block codecs.
"""

from pathlib import Path
from typing import List, Optional, Union

from ..errors import UnsupportedOperation
from ..model import BlockKind, Picture, PropertyEntry, RatingInfo


PathLike = Union[str, Path]


class TagBlock:
    """
    In-memory model of one physical tag block.

    Public mutators mark the block dirty only after the format-specific
    change succeeded, so a refused write leaves the block clean.
    """

    kind: BlockKind = None
    supports_pictures = False
    supports_rating = False

    def __init__(self, on_disk: bool = True):
        # Whether the block existed in the file when it was opened
        self.on_disk = on_disk
        self.dirty = False
        self.removed = False
        # Pictures as last set by the caller, until the next reload
        self._pending_pictures: Optional[List[Picture]] = None

    def __repr__(self) -> str:
        state = 'removed' if self.removed else ('dirty' if self.dirty else 'clean')
        return f"<{type(self).__name__} {self.kind} {state}>"

    def mark_dirty(self) -> None:
        self.dirty = True
        self.removed = False

    # ---------- Properties ----------

    def entries(self) -> List[PropertyEntry]:
        """Every value in the block, one entry per value, in native order."""
        raise NotImplementedError

    def _entry(self, key: str, value: object, native: bool = False) -> PropertyEntry:
        return PropertyEntry(source=self.kind, key=key, value=str(value), native=native)

    def set(self, key: str, values: List[str]) -> None:
        """Replace every value of ``key`` with ``values``."""
        if not values:
            self.remove(key)
            return
        self._set(key, [str(v) for v in values])
        self.mark_dirty()

    def remove(self, key: str) -> bool:
        """Remove ``key``; returns whether anything was present."""
        found = self._remove(key)
        if found:
            self.mark_dirty()
        return found

    def clear(self) -> None:
        """Drop every item, picture and counter from the in-memory block."""
        self._clear()
        self._pending_pictures = None
        self.dirty = True

    def _set(self, key: str, values: List[str]) -> None:
        raise NotImplementedError

    def _remove(self, key: str) -> bool:
        raise NotImplementedError

    def _clear(self) -> None:
        raise NotImplementedError

    # ---------- Pictures ----------

    def pictures(self) -> List[Picture]:
        if self._pending_pictures is not None:
            return list(self._pending_pictures)
        return self._read_pictures()

    def _read_pictures(self) -> List[Picture]:
        return []

    def set_pictures(self, pictures: List[Picture]) -> None:
        """Replace the block's pictures; raises CapacityExceeded before changing anything."""
        if not self.supports_pictures:
            raise UnsupportedOperation(f"{self.kind} tags cannot hold pictures")
        self._set_pictures(list(pictures))
        self._pending_pictures = list(pictures)
        self.mark_dirty()

    def _set_pictures(self, pictures: List[Picture]) -> None:
        raise NotImplementedError

    # ---------- Rating ----------

    def get_rating(self) -> Optional[RatingInfo]:
        return None

    def set_rating(self, rating: Optional[int]) -> None:
        if not self.supports_rating:
            raise UnsupportedOperation(f"{self.kind} tags have no rating field")
        self._set_rating(rating)
        self.mark_dirty()

    def set_play_count(self, count: int) -> None:
        if not self.supports_rating:
            raise UnsupportedOperation(f"{self.kind} tags have no play counter")
        self._set_play_count(count)
        self.mark_dirty()

    def _set_rating(self, rating: Optional[int]) -> None:
        raise NotImplementedError

    def _set_play_count(self, count: int) -> None:
        raise NotImplementedError

    # ---------- Serialization ----------

    def commit(self, target: PathLike) -> None:
        """Write the in-memory block into the staged file at ``target``."""
        raise NotImplementedError

    def strip(self, target: PathLike) -> None:
        """Remove the block from the staged file at ``target``."""
        raise NotImplementedError
