"""
Rating and play count mapping.

Ratings use the 0..255 POPM scale internally; stars follow the table most
players use when reading POPM:

    0 -> 0, 1..63 -> 1, 64..127 -> 2, 128..195 -> 3, 196..254 -> 4, 255 -> 5
"""

import logging
from typing import Optional

from .errors import TagError
from .model import RatingInfo

logger = logging.getLogger(__name__)

# Rating written for each star count
STAR_RATINGS = (0, 1, 64, 128, 196, 255)


def rating_to_stars(rating: int) -> int:
    if not 0 <= rating <= 255:
        raise ValueError(f"Rating must be 0-255, got {rating}")
    if rating == 0:
        return 0
    if rating < 64:
        return 1
    if rating < 128:
        return 2
    if rating < 196:
        return 3
    if rating < 255:
        return 4
    return 5


def stars_to_rating(stars: int) -> int:
    if not 0 <= stars <= 5:
        raise ValueError(f"Stars must be 0-5, got {stars}")
    return STAR_RATINGS[stars]


class RatingMapper:
    """
    Rating and play count access through the container's rating-capable block.

    Containers without one report None and refuse writes.
    """

    def __init__(self, container):
        self.container = container

    def _info(self) -> Optional[RatingInfo]:
        try:
            block = self.container.rating_block(create=False)
        except TagError as e:
            logger.debug(f"No rating block: {e}")
            return None
        if block is None:
            return None
        return block.get_rating()

    def get_rating(self) -> Optional[int]:
        info = self._info()
        return info.rating if info else None

    def get_play_count(self) -> int:
        info = self._info()
        return info.play_count if info else 0

    def set_rating(self, rating: Optional[int]) -> bool:
        if rating is not None and not 0 <= rating <= 255:
            logger.warning(f"Rating must be 0-255, got {rating}")
            return False
        try:
            block = self.container.rating_block(create=rating is not None)
        except TagError as e:
            logger.warning(f"Cannot store a rating: {e}")
            return False
        if block is None:
            if not self.container.supports_rating:
                logger.warning(f"{self.container.container_kind} files have no rating field")
                return False
            # Clearing a rating that was never stored
            return True
        try:
            block.set_rating(rating)
        except TagError as e:
            logger.warning(f"Cannot set rating in {block.kind} tag: {e}")
            return False
        return True

    def set_play_count(self, count: int) -> bool:
        if count < 0:
            logger.warning(f"Play count must not be negative, got {count}")
            return False
        try:
            block = self.container.rating_block(create=count > 0)
        except TagError as e:
            logger.warning(f"Cannot store a play count: {e}")
            return False
        if block is None:
            if not self.container.supports_rating:
                logger.warning(f"{self.container.container_kind} files have no play counter")
                return False
            return True
        try:
            block.set_play_count(count)
        except TagError as e:
            logger.warning(f"Cannot set play count in {block.kind} tag: {e}")
            return False
        return True

    def get_stars(self) -> Optional[int]:
        rating = self.get_rating()
        return None if rating is None else rating_to_stars(rating)

    def set_stars(self, stars: Optional[int]) -> bool:
        """Store ``stars`` (0-5); any other value clears the rating."""
        if stars is None or not 0 <= stars <= 5:
            return self.set_rating(None)
        return self.set_rating(stars_to_rating(stars))
