"""Availability cache port.

Caches "is room R free for [start, end)" answers for a fixed TTL. Values
are derived from persisted reservations and may be dropped at any time.

Each room has a generation counter that ``invalidate_room`` advances. Keys
carry the generation that was current before the answer was computed, so an
answer computed while the room's reservations changed is stored under a
superseded generation and never served.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from src.models.reservation import to_utc_naive


@dataclass(frozen=True)
class AvailabilityKey:
    """Cache key for one availability question."""

    room_number: str
    start: datetime
    end: datetime
    generation: int = 0

    @classmethod
    def of(
        cls,
        room_number: str,
        start: datetime,
        end: datetime,
        generation: int = 0,
    ) -> "AvailabilityKey":
        """Build a key with timestamps normalized to naive UTC."""
        return cls(room_number, to_utc_naive(start), to_utc_naive(end), generation)

    def render(self) -> str:
        """Canonical string form, e.g. ``101_2025-01-01T00:00:00_2025-01-05T00:00:00``."""
        return f"{self.room_number}_{self.start.isoformat()}_{self.end.isoformat()}"


class AvailabilityCache(ABC):
    """Port: time-boxed memo of availability answers."""

    @abstractmethod
    def generation(self, room_number: str) -> Optional[int]:
        """Current generation of a room, or None if the cache cannot be used."""
        ...

    @abstractmethod
    def get(self, key: AvailabilityKey) -> Optional[bool]:
        """Return the cached answer, or None if absent, expired or superseded."""
        ...

    @abstractmethod
    def set(self, key: AvailabilityKey, value: bool, ttl: int) -> None:
        """Store an answer for ``ttl`` seconds. Last write wins."""
        ...

    @abstractmethod
    def invalidate_room(self, room_number: str) -> None:
        """Advance the room's generation and drop its cached answers."""
        ...

    def close(self) -> None:
        """Release held connections."""
        pass
