"""In-process availability cache."""

import threading
import time
from typing import Callable, Optional

from structlog import get_logger

from src.cache.availability_cache import AvailabilityCache, AvailabilityKey

logger = get_logger(__name__)


class InMemoryAvailabilityCache(AvailabilityCache):
    """Dict-backed cache with per-entry expiry.

    Expired entries are dropped when read. When the cache grows past
    ``max_entries`` a write first sweeps expired entries, then evicts the
    entries closest to expiry. Writes for a superseded room generation are
    discarded.
    """

    def __init__(
        self,
        max_entries: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[AvailabilityKey, tuple[bool, float]] = {}
        self._generations: dict[str, int] = {}
        self._lock = threading.Lock()

    def generation(self, room_number: str) -> int:
        with self._lock:
            return self._generations.get(room_number, 0)

    def get(self, key: AvailabilityKey) -> Optional[bool]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: AvailabilityKey, value: bool, ttl: int) -> None:
        with self._lock:
            if key.generation != self._generations.get(key.room_number, 0):
                logger.debug("Discarded superseded availability", room_number=key.room_number)
                return
            if key not in self._entries and len(self._entries) >= self.max_entries:
                self._evict()
            self._entries[key] = (value, self._clock() + ttl)

    def invalidate_room(self, room_number: str) -> None:
        with self._lock:
            self._generations[room_number] = self._generations.get(room_number, 0) + 1
            stale = [key for key in self._entries if key.room_number == room_number]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.debug("Invalidated cached availability", room_number=room_number, entries=len(stale))

    def __len__(self) -> int:
        return len(self._entries)

    def _evict(self) -> None:
        now = self._clock()
        for key in [k for k, (_, expires_at) in self._entries.items() if expires_at <= now]:
            del self._entries[key]

        overflow = len(self._entries) - self.max_entries + 1
        if overflow > 0:
            by_expiry = sorted(self._entries, key=lambda k: self._entries[k][1])
            for key in by_expiry[:overflow]:
                del self._entries[key]
