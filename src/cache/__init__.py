"""Availability cache package."""

from src.cache.availability_cache import AvailabilityCache, AvailabilityKey
from src.cache.memory_cache import InMemoryAvailabilityCache
from src.cache.redis_cache import RedisAvailabilityCache

__all__ = [
    "AvailabilityCache",
    "AvailabilityKey",
    "InMemoryAvailabilityCache",
    "RedisAvailabilityCache",
]
