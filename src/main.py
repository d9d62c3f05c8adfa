"""Main entry point for the hotel reservation service."""

import argparse
import json
import sys
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Optional

from src.api import ReservationHandler, RoomHandler, Router
from src.cache import AvailabilityCache, InMemoryAvailabilityCache, RedisAvailabilityCache
from src.config import Settings, bind_request_context, configure_logging, get_logger, settings
from src.db import Database, create_database
from src.exceptions import StorageError
from src.models import Room, is_valid_room_number
from src.repositories import ReservationRepository, RoomRepository
from src.services import AvailabilityChecker, BookingService, CachedAvailabilityService

logger = get_logger(__name__)


@dataclass
class Application:
    """Wired service graph."""

    db: Database
    reservations: ReservationRepository
    rooms: RoomRepository
    cache: AvailabilityCache
    availability: CachedAvailabilityService
    booking: BookingService
    router: Router

    def close(self) -> None:
        self.cache.close()
        self.db.close()


def build_cache(app_settings: Settings) -> AvailabilityCache:
    """Pick the availability cache backend from settings."""
    if app_settings.cache.backend == "redis":
        return RedisAvailabilityCache(key_prefix=app_settings.cache.key_prefix)
    return InMemoryAvailabilityCache()


def build_application(
    app_settings: Optional[Settings] = None,
    db: Optional[Database] = None,
    cache: Optional[AvailabilityCache] = None,
) -> Application:
    """Wire database, repositories, cache, services and router.

    Args:
        app_settings: Settings to use (defaults to the global settings)
        db: Pre-built database (defaults to one built from the database URL)
        cache: Pre-built availability cache (defaults to the configured backend)

    Returns:
        Application with every component constructed
    """
    app_settings = app_settings or settings
    db = db or create_database(app_settings.database.url, timeout=app_settings.database.timeout)
    cache = cache or build_cache(app_settings)

    reservations = ReservationRepository(db)
    rooms = RoomRepository(db)
    availability = CachedAvailabilityService(
        AvailabilityChecker(reservations),
        cache,
        ttl_seconds=app_settings.cache.availability_ttl_seconds,
    )
    booking = BookingService(reservations, availability)
    router = Router(
        ReservationHandler(reservations, booking),
        RoomHandler(rooms, availability),
    )

    logger.info(
        "Application built",
        environment=app_settings.environment,
        database_backend=db.backend,
        cache_backend=type(cache).__name__,
    )
    return Application(db, reservations, rooms, cache, availability, booking, router)


@lru_cache(maxsize=1)
def get_application() -> Application:
    """Application shared across warm Lambda invocations."""
    configure_logging()
    app = build_application()
    app.db.init_schema()
    return app


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """AWS Lambda handler for API Gateway proxy events.

    Args:
        event: API Gateway proxy event (httpMethod, path, queryStringParameters, body)
        context: Lambda context

    Returns:
        API Gateway proxy response dictionary
    """
    request_id = getattr(context, "aws_request_id", None)
    method = event.get("httpMethod", "GET")
    path = event.get("path", "/")
    bind_request_context(request_id=request_id)

    logger.info("Lambda invoked", method=method, path=path)

    response = get_application().router.dispatch(
        method,
        path,
        query=event.get("queryStringParameters") or {},
        body=event.get("body"),
    )

    logger.info("Lambda execution complete", status_code=response.status_code)
    return response.to_lambda()


def main(argv: Optional[list[str]] = None) -> int:
    """Initialize the database schema and optionally seed rooms.

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(description="Hotel reservation service")
    parser.add_argument(
        "--seed-rooms",
        nargs="*",
        default=[],
        metavar="NUMBER",
        help="Room numbers to create, e.g. 101 102 201",
    )
    args = parser.parse_args(argv)

    logger.info("Starting hotel reservation service", environment=settings.environment)

    invalid = [number for number in args.seed_rooms if not is_valid_room_number(number)]
    if invalid:
        logger.error("Invalid room numbers", room_numbers=invalid)
        print(json.dumps({"success": False, "error": f"Invalid room numbers: {', '.join(invalid)}"}))
        return 1

    app = None
    try:
        app = build_application()
        app.db.init_schema()

        created = []
        for number in args.seed_rooms:
            if app.rooms.get(number) is None:
                app.rooms.create(Room(number=number))
                created.append(number)

        print(json.dumps({"success": True, "rooms_created": created}, indent=2))
        return 0
    except (StorageError, ValueError) as e:
        logger.error(
            "Fatal error in main application",
            error=str(e),
            exc_info=True,
        )
        return 1
    finally:
        if app is not None:
            app.close()


if __name__ == "__main__":
    configure_logging()
    sys.exit(main())
