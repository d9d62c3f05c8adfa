"""Booking orchestrator: validate, check availability, persist."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union
from uuid import UUID

from structlog import get_logger

from src.exceptions import (
    NotFoundError,
    RejectionReason,
    RoomNotFoundError,
    RoomUnavailableError,
    StorageError,
)
from src.models.reservation import Reservation
from src.models.room import is_valid_room_number
from src.repositories.reservation_repository import ReservationRepository
from src.services.availability_service import CachedAvailabilityService
from src.services.validation import ReservationValidator

logger = get_logger(__name__)

INVALID_ROOM_MESSAGE = "Invalid room number. Ensure it follows the proper format and rules."
STORAGE_ERROR_MESSAGE = "An error occurred while processing the reservation."


class BookingStatus(str, Enum):
    """Terminal states of a booking request."""

    BOOKED = "Booked"
    REJECTED = "Rejected"


@dataclass(frozen=True)
class BookingResult:
    """Outcome of one booking attempt."""

    status: BookingStatus
    reservation: Optional[Reservation] = None
    reason: Optional[RejectionReason] = None
    message: str = ""

    @classmethod
    def booked(cls, reservation: Reservation) -> "BookingResult":
        return cls(BookingStatus.BOOKED, reservation=reservation)

    @classmethod
    def rejected(cls, reason: RejectionReason, message: str) -> "BookingResult":
        return cls(BookingStatus.REJECTED, reason=reason, message=message)

    @property
    def is_booked(self) -> bool:
        return self.status is BookingStatus.BOOKED


class BookingService:
    """Runs a booking request through its steps once, with no retries.

    Steps:
    1. Validate shape (dates, duration, email)
    2. Validate room number format
    3. Check availability (cache, then storage)
    4. Persist atomically (the store re-checks overlap in the same transaction)
    """

    def __init__(
        self,
        repository: ReservationRepository,
        availability: CachedAvailabilityService,
        validator: Optional[ReservationValidator] = None,
    ):
        self.repository = repository
        self.availability = availability
        self.validator = validator or ReservationValidator()

    def book(self, reservation: Reservation) -> BookingResult:
        """Attempt to book a reservation.

        Args:
            reservation: Requested reservation; a nil id is replaced by a server-generated one

        Returns:
            BookingResult that is either booked with the stored reservation,
            or rejected with a reason and message
        """
        log = logger.bind(room_number=reservation.room_number, guest_email=reservation.guest_email)

        validation = self.validator.validate(reservation)
        if not validation.is_valid:
            log.warning("Invalid reservation", error=validation.error_message)
            return BookingResult.rejected(RejectionReason.VALIDATION_ERROR, validation.error_message)

        if not is_valid_room_number(reservation.room_number):
            log.warning("Invalid room number provided")
            return BookingResult.rejected(RejectionReason.INVALID_ROOM_NUMBER, INVALID_ROOM_MESSAGE)

        try:
            available = self.availability.is_available(
                reservation.room_number, reservation.start, reservation.end
            )
        except StorageError as e:
            log.error("Availability check failed", error=str(e), exc_info=True)
            return BookingResult.rejected(RejectionReason.STORAGE_ERROR, STORAGE_ERROR_MESSAGE)

        if not available:
            log.info("Room unavailable for requested dates")
            return BookingResult.rejected(
                RejectionReason.ROOM_UNAVAILABLE,
                f"Room {reservation.room_number} is already booked for the selected dates.",
            )

        try:
            created = self.repository.create(reservation)
        except RoomNotFoundError as e:
            log.warning("Room not found", error=str(e))
            return BookingResult.rejected(
                RejectionReason.ROOM_NOT_FOUND, f"Room {reservation.room_number} not found."
            )
        except RoomUnavailableError as e:
            log.info("Room booked concurrently", error=str(e))
            self.availability.invalidate_room(reservation.room_number)
            return BookingResult.rejected(
                RejectionReason.ROOM_UNAVAILABLE,
                f"Room {reservation.room_number} is already booked for the selected dates.",
            )
        except StorageError as e:
            log.error("Failed to persist reservation", error=str(e), exc_info=True)
            return BookingResult.rejected(RejectionReason.STORAGE_ERROR, STORAGE_ERROR_MESSAGE)

        self.availability.invalidate_room(created.room_number)
        log.info("Reservation booked", reservation_id=str(created.id))
        return BookingResult.booked(created)

    def cancel(self, reservation_id: Union[UUID, str]) -> bool:
        """Delete a reservation and drop cached availability for its room.

        Returns:
            True if removed, False if no reservation had this id
        """
        try:
            reservation = self.repository.get(reservation_id)
        except NotFoundError:
            reservation = None

        deleted = self.repository.delete(reservation_id)
        if deleted and reservation is not None:
            self.availability.invalidate_room(reservation.room_number)
        logger.info("Reservation cancel requested", reservation_id=str(reservation_id), deleted=deleted)
        return deleted
