"""Append-only record of swipes."""

from typing import Optional

from swipematch.models.swipe import Swipe
from swipematch.storage.base import UnitOfWork
from swipematch.utils.clock import Clock, utcnow
from swipematch.utils.logging import get_logger

logger = get_logger(__name__)


class SwipeStore:
    """
    Records at most one swipe per ordered (swiper, swiped) pair.

    `record` rejects a duplicate with `ConflictError`; swipes are never
    updated or deleted.
    """

    def __init__(self, clock: Clock = utcnow) -> None:
        self._clock = clock

    def record(self, uow: UnitOfWork, swiper_id: int, swiped_id: int, liked: bool) -> Swipe:
        swipe = uow.insert_swipe(swiper_id, swiped_id, liked, self._clock())
        logger.debug("Swipe recorded", swiper_id=swiper_id, swiped_id=swiped_id, liked=liked)
        return swipe

    def find(self, uow: UnitOfWork, swiper_id: int, swiped_id: int) -> Optional[Swipe]:
        return uow.find_swipe(swiper_id, swiped_id)
