"""Redis-backed availability cache shared across processes."""

from typing import Optional

import redis
from structlog import get_logger

from src.cache.availability_cache import AvailabilityCache, AvailabilityKey
from src.config import settings

logger = get_logger(__name__)


class RedisAvailabilityCache(AvailabilityCache):
    """Stores answers with SETEX so Redis handles expiry.

    Each room has an ``{prefix}:{room}:gen`` counter advanced with INCR on
    invalidation. Answer keys end with the generation they were computed
    under, so a write that raced an invalidation lands on a key no reader
    asks for and expires with its TTL.

    Redis failures never fail a request: reads degrade to a miss and
    writes are skipped, with a warning logged.
    """

    def __init__(
        self,
        redis_client: Optional[redis.Redis] = None,
        key_prefix: Optional[str] = None,
    ):
        """Initialize the Redis client for availability caching.

        Args:
            redis_client: Pre-built client (defaults to one built from settings)
            key_prefix: Namespace for keys (defaults to settings.cache.key_prefix)
        """
        self.key_prefix = key_prefix or settings.cache.key_prefix
        self.redis_client = redis_client or redis.Redis(
            host=settings.redis.host,
            port=settings.redis.port,
            db=settings.redis.db,
            password=settings.redis.password,
            ssl=settings.redis.ssl,
            decode_responses=settings.redis.decode_responses,
            socket_timeout=settings.redis.socket_timeout,
            socket_connect_timeout=settings.redis.socket_connect_timeout,
        )

    def _redis_key(self, key: AvailabilityKey) -> str:
        return f"{self.key_prefix}:{key.render()}:{key.generation}"

    def _generation_key(self, room_number: str) -> str:
        return f"{self.key_prefix}:{room_number}:gen"

    def generation(self, room_number: str) -> Optional[int]:
        try:
            raw = self.redis_client.get(self._generation_key(room_number))
        except redis.RedisError as e:
            logger.warning("Redis generation lookup failed", room_number=room_number, error=str(e))
            return None
        return int(raw) if raw is not None else 0

    def get(self, key: AvailabilityKey) -> Optional[bool]:
        try:
            raw = self.redis_client.get(self._redis_key(key))
        except redis.RedisError as e:
            logger.warning("Redis get operation failed", room_number=key.room_number, error=str(e))
            return None
        if raw is None:
            return None
        return raw in ("1", b"1")

    def set(self, key: AvailabilityKey, value: bool, ttl: int) -> None:
        try:
            self.redis_client.setex(self._redis_key(key), ttl, "1" if value else "0")
        except redis.RedisError as e:
            logger.warning(
                "Failed to store availability in Redis",
                room_number=key.room_number,
                error=str(e),
            )

    def invalidate_room(self, room_number: str) -> None:
        pattern = f"{self.key_prefix}:{room_number}_*"
        try:
            self.redis_client.incr(self._generation_key(room_number))
            stale = list(self.redis_client.scan_iter(match=pattern))
            if stale:
                self.redis_client.delete(*stale)
        except redis.RedisError as e:
            logger.warning(
                "Failed to invalidate cached availability",
                room_number=room_number,
                error=str(e),
            )

    def close(self) -> None:
        """Close the Redis connection."""
        try:
            self.redis_client.close()
            logger.debug("Closed Redis connection")
        except redis.RedisError as e:
            logger.warning("Error closing Redis connection", error=str(e))
