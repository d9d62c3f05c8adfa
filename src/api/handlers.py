"""Request handlers for the reservation and room endpoints."""

import json
from datetime import datetime
from typing import Any, Optional, Union
from uuid import UUID

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from structlog import get_logger

from src.api.response import ApiResponse
from src.exceptions import NotFoundError, RejectionReason, StorageError, ValidationError
from src.models.reservation import Reservation, to_utc_naive
from src.models.room import Room, is_valid_room_number
from src.repositories.reservation_repository import ReservationRepository
from src.repositories.room_repository import RoomRepository
from src.services.availability_service import CachedAvailabilityService
from src.services.booking_service import INVALID_ROOM_MESSAGE, BookingService

logger = get_logger(__name__)

Body = Union[str, bytes, dict[str, Any], None]

_TIMESTAMP = TypeAdapter(datetime)

REJECTION_STATUS = {
    RejectionReason.VALIDATION_ERROR: 400,
    RejectionReason.INVALID_ROOM_NUMBER: 400,
    RejectionReason.ROOM_NOT_FOUND: 400,
    RejectionReason.ROOM_UNAVAILABLE: 409,
    RejectionReason.STORAGE_ERROR: 500,
}


def parse_body(body: Body) -> dict[str, Any]:
    """Decode a JSON request body into a dict."""
    if isinstance(body, dict):
        return body
    if not body:
        raise ValidationError("Request body is required.")
    try:
        payload = json.loads(body)
    except (TypeError, ValueError) as e:
        raise ValidationError("Request body must be valid JSON.") from e
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object.")
    return payload


def parse_timestamp(value: Optional[str], name: str) -> datetime:
    """Parse a date (YYYY-MM-DD) or ISO 8601 timestamp query parameter."""
    if not value:
        raise ValidationError(f"{name} is required.")
    if len(value) == 10:
        try:
            return datetime.strptime(value, "%Y-%m-%d")
        except ValueError:
            pass
    try:
        return to_utc_naive(_TIMESTAMP.validate_python(value))
    except PydanticValidationError as e:
        raise ValidationError(f"{name} must be a date or ISO 8601 timestamp.") from e


def parse_reservation_id(value: str) -> Optional[UUID]:
    try:
        return UUID(value)
    except ValueError:
        return None


class ReservationHandler:
    """Handlers for /reservation."""

    def __init__(self, repository: ReservationRepository, booking: BookingService):
        self.repository = repository
        self.booking = booking

    def list_reservations(self) -> ApiResponse:
        try:
            reservations = self.repository.list_all()
        except StorageError as e:
            logger.error("An error occurred while fetching reservations", error=str(e), exc_info=True)
            return ApiResponse.error(500, "An error occurred while fetching the reservations.")

        logger.info("Fetched reservations", reservation_count=len(reservations))
        return ApiResponse.json(200, [r.to_api() for r in reservations])

    def list_upcoming(self) -> ApiResponse:
        try:
            reservations = self.repository.list_upcoming()
        except StorageError as e:
            logger.error("An error occurred while fetching upcoming reservations", error=str(e), exc_info=True)
            return ApiResponse.error(500, "An error occurred while fetching the reservations.")

        return ApiResponse.json(200, [r.to_api() for r in reservations])

    def get_reservation(self, reservation_id: str) -> ApiResponse:
        parsed_id = parse_reservation_id(reservation_id)
        if parsed_id is None:
            logger.warning("Malformed reservation id", reservation_id=reservation_id)
            return ApiResponse.error(404, f"Reservation {reservation_id} not found.")

        try:
            reservation = self.repository.get(parsed_id)
        except NotFoundError:
            logger.warning("Reservation not found", reservation_id=reservation_id)
            return ApiResponse.error(404, f"Reservation {reservation_id} not found.")
        except StorageError as e:
            logger.error(
                "An error occurred while fetching the reservation",
                reservation_id=reservation_id,
                error=str(e),
                exc_info=True,
            )
            return ApiResponse.error(500, "An error occurred while fetching the reservation.")

        return ApiResponse.json(200, reservation.to_api())

    def book_reservation(self, body: Body) -> ApiResponse:
        """Create a reservation. Send the nil UUID as Id to have one generated."""
        try:
            reservation = Reservation.model_validate(parse_body(body))
        except ValidationError as e:
            return ApiResponse.error(400, str(e), reason=RejectionReason.VALIDATION_ERROR.value)
        except PydanticValidationError as e:
            logger.warning("Malformed reservation payload", error_count=e.error_count())
            return ApiResponse.error(
                400,
                "Malformed reservation payload.",
                reason=RejectionReason.VALIDATION_ERROR.value,
                details=[
                    {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                    for err in e.errors()
                ],
            )

        result = self.booking.book(reservation)
        if not result.is_booked:
            return ApiResponse.error(
                REJECTION_STATUS[result.reason],
                result.message,
                reason=result.reason.value,
            )

        created = result.reservation
        return ApiResponse.json(
            201,
            created.to_api(),
            headers={"Location": f"/reservation/{created.id}"},
        )

    def delete_reservation(self, reservation_id: str) -> ApiResponse:
        parsed_id = parse_reservation_id(reservation_id)
        if parsed_id is None:
            return ApiResponse.error(404, f"Reservation {reservation_id} not found.")

        try:
            deleted = self.booking.cancel(parsed_id)
        except StorageError as e:
            logger.error(
                "An error occurred while deleting the reservation",
                reservation_id=reservation_id,
                error=str(e),
                exc_info=True,
            )
            return ApiResponse.error(500, "An error occurred while deleting the reservation.")

        if not deleted:
            logger.warning("Reservation not found for deletion", reservation_id=reservation_id)
            return ApiResponse.error(404, f"Reservation {reservation_id} not found.")
        return ApiResponse.empty(204)


class RoomHandler:
    """Handlers for /room."""

    def __init__(self, repository: RoomRepository, availability: CachedAvailabilityService):
        self.repository = repository
        self.availability = availability

    def list_rooms(self) -> ApiResponse:
        try:
            rooms = self.repository.list_all()
        except StorageError as e:
            logger.error("An error occurred while fetching rooms", error=str(e), exc_info=True)
            return ApiResponse.error(500, "An error occurred while fetching rooms.")
        return ApiResponse.json(200, [room.model_dump() for room in rooms])

    def get_room(self, room_number: str) -> ApiResponse:
        if not is_valid_room_number(room_number):
            logger.warning("Invalid room number format", room_number=room_number)
            return ApiResponse.error(400, INVALID_ROOM_MESSAGE)

        try:
            room = self.repository.get(room_number)
        except StorageError as e:
            logger.error("An error occurred while fetching the room", room_number=room_number, error=str(e))
            return ApiResponse.error(500, "An error occurred while fetching the room.")

        if room is None:
            logger.warning("Room not found", room_number=room_number)
            return ApiResponse.error(404, f"Room {room_number} not found.")
        return ApiResponse.json(200, room.model_dump())

    def create_room(self, body: Body) -> ApiResponse:
        try:
            room = Room.model_validate(parse_body(body))
        except ValidationError as e:
            return ApiResponse.error(400, str(e))
        except PydanticValidationError:
            return ApiResponse.error(400, "Malformed room payload.")

        if not is_valid_room_number(room.number):
            logger.warning("Invalid room number format", room_number=room.number)
            return ApiResponse.error(400, INVALID_ROOM_MESSAGE)

        try:
            if self.repository.get(room.number) is not None:
                return ApiResponse.error(409, f"Room {room.number} already exists.")
            created = self.repository.create(room)
        except StorageError as e:
            logger.error("An error occurred while creating the room", room_number=room.number, error=str(e))
            return ApiResponse.error(500, "An error occurred while creating the room.")

        return ApiResponse.json(201, created.model_dump(), headers={"Location": f"/room/{created.number}"})

    def delete_room(self, room_number: str) -> ApiResponse:
        if not is_valid_room_number(room_number):
            return ApiResponse.error(400, "Invalid room ID - format is ###, ex 001 / 002 / 101")

        try:
            deleted = self.repository.delete(room_number)
        except StorageError as e:
            logger.error("An error occurred while deleting the room", room_number=room_number, error=str(e))
            return ApiResponse.error(500, "An error occurred while deleting the room.")

        if deleted:
            self.availability.invalidate_room(room_number)
            return ApiResponse.empty(204)
        return ApiResponse.error(404, f"Room {room_number} not found.")

    def check_availability(self, query: dict[str, str]) -> ApiResponse:
        """Answer ``{"available": bool}`` for roomNumber / startDate / endDate."""
        room_number = query.get("roomNumber", "")
        if not is_valid_room_number(room_number):
            return ApiResponse.error(400, INVALID_ROOM_MESSAGE)

        try:
            start = parse_timestamp(query.get("startDate"), "startDate")
            end = parse_timestamp(query.get("endDate"), "endDate")
        except ValidationError as e:
            return ApiResponse.error(400, str(e))

        if start >= end:
            return ApiResponse.error(400, "Start date must be before the end date.")

        try:
            available = self.availability.is_available(room_number, start, end)
        except StorageError as e:
            logger.error(
                "An error occurred while checking room availability",
                room_number=room_number,
                error=str(e),
                exc_info=True,
            )
            return ApiResponse.error(500, "An error occurred while checking availability.")

        return ApiResponse.json(200, {"available": available})
