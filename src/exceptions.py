"""Error taxonomy for the reservation service."""

from enum import Enum
from typing import Optional


class ReservationServiceError(Exception):
    """Base exception for reservation service errors."""

    pass


class ValidationError(ReservationServiceError):
    """Raised when a request has a malformed shape (dates, duration, email)."""

    pass


class InvalidRoomNumberError(ReservationServiceError):
    """Raised when a room number does not follow the ### format."""

    pass


class NotFoundError(ReservationServiceError):
    """Raised when a lookup matches no row."""

    pass


class RoomNotFoundError(NotFoundError):
    """Raised when a referenced room does not exist at persistence time."""

    pass


class RoomUnavailableError(ReservationServiceError):
    """Raised when the requested date range overlaps an existing reservation."""

    pass


class StorageError(ReservationServiceError):
    """Raised when a transaction or connection fails.

    The original driver exception is kept on ``cause`` for diagnostics;
    its message must not be shown to API callers.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class RejectionReason(str, Enum):
    """Why a booking request was rejected."""

    VALIDATION_ERROR = "ValidationError"
    INVALID_ROOM_NUMBER = "InvalidRoomNumber"
    ROOM_NOT_FOUND = "RoomNotFound"
    ROOM_UNAVAILABLE = "RoomUnavailable"
    STORAGE_ERROR = "StorageError"
