"""Tests for the availability checker and caches."""

from datetime import datetime
from unittest.mock import MagicMock, Mock, patch

import pytest
import redis

from src.cache import (
    AvailabilityCache,
    AvailabilityKey,
    InMemoryAvailabilityCache,
    RedisAvailabilityCache,
)
from src.services import AvailabilityChecker, CachedAvailabilityService

JAN_1 = datetime(2025, 1, 1)
JAN_5 = datetime(2025, 1, 5)


def key(room="101", start=JAN_1, end=JAN_5):
    return AvailabilityKey.of(room, start, end)


class TestAvailabilityChecker:
    """Tests for storage-backed availability."""

    def test_free_room_is_available(self, reservation_repository):
        checker = AvailabilityChecker(reservation_repository)
        assert checker.is_available("101", JAN_1, JAN_5)

    def test_overlapping_reservation_blocks_room(self, reservation_repository, make_reservation):
        """Any overlap blocks, not just an exact match on the same dates."""
        reservation_repository.create(make_reservation(start_day=1, end_day=5))
        checker = AvailabilityChecker(reservation_repository)

        assert not checker.is_available("101", datetime(2025, 1, 3), datetime(2025, 1, 7))
        assert not checker.is_available("101", datetime(2024, 12, 28), datetime(2025, 1, 10))

    def test_adjacent_stays_do_not_block(self, reservation_repository, make_reservation):
        reservation_repository.create(make_reservation(start_day=1, end_day=5))
        checker = AvailabilityChecker(reservation_repository)

        assert checker.is_available("101", datetime(2025, 1, 5), datetime(2025, 1, 8))

    def test_other_rooms_unaffected(self, reservation_repository, make_reservation):
        reservation_repository.create(make_reservation(start_day=1, end_day=5))
        checker = AvailabilityChecker(reservation_repository)

        assert checker.is_available("102", JAN_1, JAN_5)


class TestAvailabilityKey:
    """Tests for canonical key rendering."""

    def test_render(self):
        assert key().render() == "101_2025-01-01T00:00:00_2025-01-05T00:00:00"

    def test_equal_inputs_give_equal_keys(self):
        assert key() == key()
        assert key() != key(room="102")


class TestInMemoryAvailabilityCache:
    """Tests for TTL and eviction of the in-process cache."""

    def test_miss_then_hit(self, cache):
        assert cache.get(key()) is None
        cache.set(key(), False, ttl=900)
        assert cache.get(key()) is False

    def test_entry_expires_after_ttl(self, cache, clock):
        cache.set(key(), True, ttl=900)

        clock.advance(899)
        assert cache.get(key()) is True

        clock.advance(1)
        assert cache.get(key()) is None

    def test_last_write_wins(self, cache):
        cache.set(key(), True, ttl=900)
        cache.set(key(), False, ttl=900)
        assert cache.get(key()) is False

    def test_invalidate_room(self, cache):
        cache.set(key(room="101"), True, ttl=900)
        cache.set(key(room="101", end=datetime(2025, 1, 9)), True, ttl=900)
        cache.set(key(room="102"), True, ttl=900)

        cache.invalidate_room("101")

        assert cache.get(key(room="101")) is None
        assert cache.get(key(room="102")) is True
        assert len(cache) == 1

    def test_evicts_when_full(self, clock):
        cache = InMemoryAvailabilityCache(max_entries=2, clock=clock)
        cache.set(key(room="101"), True, ttl=100)
        cache.set(key(room="102"), True, ttl=900)
        cache.set(key(room="201"), True, ttl=900)

        assert len(cache) == 2
        assert cache.get(key(room="101")) is None
        assert cache.get(key(room="201")) is True

    def test_invalidate_room_advances_generation(self, cache):
        assert cache.generation("101") == 0

        cache.invalidate_room("101")
        cache.invalidate_room("101")

        assert cache.generation("101") == 2
        assert cache.generation("102") == 0

    def test_write_for_superseded_generation_is_discarded(self, cache):
        computed_under = cache.generation("101")
        cache.invalidate_room("101")

        cache.set(AvailabilityKey.of("101", JAN_1, JAN_5, computed_under), True, ttl=900)

        assert len(cache) == 0
        assert cache.get(AvailabilityKey.of("101", JAN_1, JAN_5, cache.generation("101"))) is None


class TestCachedAvailabilityService:
    """Tests for cache-then-checker lookups."""

    def test_second_call_within_ttl_skips_checker(self, cache):
        checker = Mock(spec=AvailabilityChecker)
        checker.is_available.return_value = True
        service = CachedAvailabilityService(checker, cache, ttl_seconds=900)

        assert service.is_available("101", JAN_1, JAN_5) is True
        assert service.is_available("101", JAN_1, JAN_5) is True

        checker.is_available.assert_called_once_with("101", JAN_1, JAN_5)

    def test_checker_called_again_after_ttl(self, cache, clock):
        checker = Mock(spec=AvailabilityChecker)
        checker.is_available.return_value = False
        service = CachedAvailabilityService(checker, cache, ttl_seconds=900)

        service.is_available("101", JAN_1, JAN_5)
        clock.advance(901)
        service.is_available("101", JAN_1, JAN_5)

        assert checker.is_available.call_count == 2

    def test_cold_and_warm_cache_agree(self, reservation_repository, make_reservation, cache):
        reservation_repository.create(make_reservation(start_day=1, end_day=5))
        checker = AvailabilityChecker(reservation_repository)
        warm = CachedAvailabilityService(checker, cache, ttl_seconds=900)
        warm.is_available("101", datetime(2025, 1, 3), datetime(2025, 1, 7))

        cold = CachedAvailabilityService(checker, InMemoryAvailabilityCache(), ttl_seconds=900)

        for start, end in [(datetime(2025, 1, 3), datetime(2025, 1, 7)), (JAN_5, datetime(2025, 1, 8))]:
            assert warm.is_available("101", start, end) == cold.is_available("101", start, end)

    def test_default_ttl_is_fifteen_minutes(self, cache):
        service = CachedAvailabilityService(Mock(spec=AvailabilityChecker), cache)
        assert service.ttl_seconds == 900

    def test_zero_ttl_disables_storing(self, cache):
        checker = Mock(spec=AvailabilityChecker)
        checker.is_available.return_value = True
        service = CachedAvailabilityService(checker, cache, ttl_seconds=0)

        service.is_available("101", JAN_1, JAN_5)
        service.is_available("101", JAN_1, JAN_5)

        assert service.ttl_seconds == 0
        assert checker.is_available.call_count == 2
        assert len(cache) == 0

    def test_booking_committed_during_miss_is_not_cached_as_free(
        self, reservation_repository, make_reservation, cache
    ):
        """An invalidation that lands while an answer is computed keeps that answer out of the cache."""
        checker = AvailabilityChecker(reservation_repository)
        service = CachedAvailabilityService(checker, cache, ttl_seconds=900)
        compute = checker.is_available

        def book_while_computing(room_number, start, end):
            answer = compute(room_number, start, end)
            reservation_repository.create(make_reservation(start_day=1, end_day=5))
            service.invalidate_room(room_number)
            return answer

        window = ("101", datetime(2025, 1, 2), datetime(2025, 1, 4))
        with patch.object(checker, "is_available", side_effect=book_while_computing):
            assert service.is_available(*window) is True

        cold = CachedAvailabilityService(
            AvailabilityChecker(reservation_repository), InMemoryAvailabilityCache(), ttl_seconds=900
        )
        assert service.is_available(*window) is False
        assert cold.is_available(*window) is False

    def test_unusable_cache_falls_back_to_checker(self):
        checker = Mock(spec=AvailabilityChecker)
        checker.is_available.return_value = False
        cache = Mock(spec=AvailabilityCache)
        cache.generation.return_value = None
        service = CachedAvailabilityService(checker, cache, ttl_seconds=900)

        assert service.is_available("101", JAN_1, JAN_5) is False
        cache.get.assert_not_called()
        cache.set.assert_not_called()


class TestRedisAvailabilityCache:
    """Tests for the Redis cache with a mocked client."""

    @pytest.fixture
    def redis_client(self):
        return MagicMock(spec=redis.Redis)

    @pytest.fixture
    def redis_cache(self, redis_client):
        return RedisAvailabilityCache(redis_client=redis_client, key_prefix="availability")

    def test_set_uses_setex_with_ttl(self, redis_cache, redis_client):
        redis_cache.set(key(), True, ttl=900)

        redis_client.setex.assert_called_once_with(
            "availability:101_2025-01-01T00:00:00_2025-01-05T00:00:00:0", 900, "1"
        )

    def test_get_decodes_values(self, redis_cache, redis_client):
        redis_client.get.return_value = "0"
        assert redis_cache.get(key()) is False

        redis_client.get.return_value = b"1"
        assert redis_cache.get(key()) is True

        redis_client.get.return_value = None
        assert redis_cache.get(key()) is None

    def test_redis_errors_degrade_to_miss(self, redis_cache, redis_client):
        redis_client.get.side_effect = redis.ConnectionError("down")
        redis_client.setex.side_effect = redis.ConnectionError("down")

        assert redis_cache.get(key()) is None
        redis_cache.set(key(), True, ttl=900)

    def test_invalidate_room_deletes_matching_keys(self, redis_cache, redis_client):
        redis_client.scan_iter.return_value = iter(["availability:101_a_b", "availability:101_c_d"])

        redis_cache.invalidate_room("101")

        redis_client.incr.assert_called_once_with("availability:101:gen")
        redis_client.scan_iter.assert_called_once_with(match="availability:101_*")
        redis_client.delete.assert_called_once_with("availability:101_a_b", "availability:101_c_d")

    def test_invalidate_room_with_no_keys(self, redis_cache, redis_client):
        redis_client.scan_iter.return_value = iter([])

        redis_cache.invalidate_room("101")

        redis_client.delete.assert_not_called()

    def test_generation_reads_counter(self, redis_cache, redis_client):
        redis_client.get.return_value = None
        assert redis_cache.generation("101") == 0

        redis_client.get.return_value = "3"
        assert redis_cache.generation("101") == 3
        redis_client.get.assert_called_with("availability:101:gen")

    def test_generation_error_makes_cache_unusable(self, redis_cache, redis_client):
        redis_client.get.side_effect = redis.ConnectionError("down")
        assert redis_cache.generation("101") is None

    def test_keys_carry_generation(self, redis_cache, redis_client):
        redis_cache.set(key(), False, ttl=900)
        redis_cache.set(AvailabilityKey.of("101", JAN_1, JAN_5, 4), False, ttl=900)

        written = [call.args[0] for call in redis_client.setex.call_args_list]
        assert written == [
            "availability:101_2025-01-01T00:00:00_2025-01-05T00:00:00:0",
            "availability:101_2025-01-01T00:00:00_2025-01-05T00:00:00:4",
        ]
