"""Business services package."""

from src.services.availability_service import AvailabilityChecker, CachedAvailabilityService
from src.services.booking_service import BookingResult, BookingService, BookingStatus
from src.services.validation import ReservationValidator, ValidationResult

__all__ = [
    "AvailabilityChecker",
    "CachedAvailabilityService",
    "BookingService",
    "BookingResult",
    "BookingStatus",
    "ReservationValidator",
    "ValidationResult",
]
