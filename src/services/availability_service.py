"""Room availability: overlap checks against persisted reservations, fronted by a cache."""

from datetime import datetime
from typing import Optional

from structlog import get_logger

from src.cache.availability_cache import AvailabilityCache, AvailabilityKey
from src.config import settings
from src.repositories.reservation_repository import ReservationRepository

logger = get_logger(__name__)


class AvailabilityChecker:
    """Answers availability from storage on every call."""

    def __init__(self, repository: ReservationRepository):
        self.repository = repository

    def is_available(self, room_number: str, start: datetime, end: datetime) -> bool:
        """True if no reservation for the room overlaps [start, end).

        Adjacent stays do not overlap: a stay ending on the 5th leaves the
        room free for one starting on the 5th.
        """
        return not self.repository.has_overlap(room_number, start, end)


class CachedAvailabilityService:
    """Cache-then-checker availability lookups.

    On a miss (absent or expired) the checker is asked and its answer is
    stored for ``ttl_seconds`` (0 disables storing) under the room's current
    generation. The cache only saves work; the booking transaction re-checks
    overlap in storage.
    """

    def __init__(
        self,
        checker: AvailabilityChecker,
        cache: AvailabilityCache,
        ttl_seconds: Optional[int] = None,
    ):
        self.checker = checker
        self.cache = cache
        self.ttl_seconds = (
            settings.cache.availability_ttl_seconds if ttl_seconds is None else ttl_seconds
        )

    def is_available(self, room_number: str, start: datetime, end: datetime) -> bool:
        # Must be read before the checker runs
        generation = self.cache.generation(room_number)
        if generation is None:
            return self.checker.is_available(room_number, start, end)

        key = AvailabilityKey.of(room_number, start, end, generation)

        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Availability cache hit", room_number=room_number, key=key.render())
            return cached

        available = self.checker.is_available(room_number, start, end)
        if self.ttl_seconds > 0:
            self.cache.set(key, available, self.ttl_seconds)
        logger.debug(
            "Availability computed",
            room_number=room_number,
            key=key.render(),
            available=available,
        )
        return available

    def invalidate_room(self, room_number: str) -> None:
        """Forget cached answers for a room after its reservations change."""
        self.cache.invalidate_room(room_number)
