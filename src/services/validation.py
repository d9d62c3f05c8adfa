"""Request shape validation for reservations."""

import re
from dataclasses import dataclass
from typing import Optional

from src.config import settings
from src.models.reservation import Reservation

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a validation: valid, or invalid with a human-readable message."""

    is_valid: bool
    error_message: str = ""

    @classmethod
    def valid(cls) -> "ValidationResult":
        return cls(True)

    @classmethod
    def invalid(cls, error_message: str) -> "ValidationResult":
        return cls(False, error_message)


class ReservationValidator:
    """Checks dates, duration and guest email of a reservation."""

    def __init__(
        self,
        min_duration_days: Optional[int] = None,
        max_duration_days: Optional[int] = None,
    ):
        self.min_duration_days = (
            settings.booking.min_duration_days if min_duration_days is None else min_duration_days
        )
        self.max_duration_days = (
            settings.booking.max_duration_days if max_duration_days is None else max_duration_days
        )

    def validate(self, reservation: Reservation) -> ValidationResult:
        if reservation.start >= reservation.end:
            return ValidationResult.invalid("Start date must be before the end date.")

        duration = reservation.duration_days
        if duration < self.min_duration_days or duration > self.max_duration_days:
            return ValidationResult.invalid(
                f"Reservation duration must be between {self.min_duration_days} "
                f"and {self.max_duration_days} days."
            )

        if not is_valid_email(reservation.guest_email):
            return ValidationResult.invalid(
                "Invalid email address. Ensure the email has a valid domain."
            )

        return ValidationResult.valid()


def is_valid_email(email: str) -> bool:
    return bool(email) and EMAIL_PATTERN.fullmatch(email) is not None
