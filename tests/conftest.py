from datetime import datetime

import pytest

from src.cache import InMemoryAvailabilityCache
from src.db import SQLiteDatabase
from src.main import build_application
from src.models import Reservation, Room
from src.repositories import ReservationRepository, RoomRepository
from src.services import AvailabilityChecker, BookingService, CachedAvailabilityService


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def db(tmp_path):
    """SQLite database with schema and rooms 101, 102 and 201."""
    database = SQLiteDatabase(str(tmp_path / "hotel.db"))
    database.init_schema()
    rooms = RoomRepository(database)
    for number in ("101", "102", "201"):
        rooms.create(Room(number=number))
    yield database
    database.close()


@pytest.fixture
def reservation_repository(db):
    return ReservationRepository(db)


@pytest.fixture
def room_repository(db):
    return RoomRepository(db)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return InMemoryAvailabilityCache(clock=clock)


@pytest.fixture
def availability(reservation_repository, cache):
    return CachedAvailabilityService(
        AvailabilityChecker(reservation_repository),
        cache,
        ttl_seconds=900,
    )


@pytest.fixture
def booking_service(reservation_repository, availability):
    return BookingService(reservation_repository, availability)


@pytest.fixture
def app(db, cache):
    """Fully wired application on the test database."""
    return build_application(db=db, cache=cache)


@pytest.fixture
def make_reservation():
    """Factory for reservations in January 2025."""

    def _make(
        room_number: str = "101",
        start_day: int = 1,
        end_day: int = 3,
        guest_email: str = "a@b.com",
        **overrides,
    ) -> Reservation:
        return Reservation(
            room_number=room_number,
            guest_email=guest_email,
            start=datetime(2025, 1, start_day),
            end=datetime(2025, 1, end_day),
            **overrides,
        )

    return _make
