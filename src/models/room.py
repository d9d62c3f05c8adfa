"""Room model and room number format rules.

Room numbers are three digits: floor digit, tens digit, then a non-zero
units digit ("101", "202", "305"). "000" style doors and anything that is not
exactly three digits are invalid. Rooms are stored by their integer form.
"""

import re

from pydantic import BaseModel, Field

from src.exceptions import InvalidRoomNumberError

ROOM_NUMBER_PATTERN = re.compile(r"^[0-9][0-9][1-9]$")


def is_valid_room_number(room_number: object) -> bool:
    """Check a room number against the ### format.

    Args:
        room_number: Candidate room number (non-strings are invalid)

    Returns:
        True if valid, False otherwise
    """
    if not isinstance(room_number, str) or not room_number.strip():
        return False
    return ROOM_NUMBER_PATTERN.fullmatch(room_number) is not None


def room_number_to_int(room_number: str) -> int:
    """Convert the external string form to the stored integer form ("007" -> 7).

    Raises:
        InvalidRoomNumberError: If the room number is not in ### format
    """
    if not is_valid_room_number(room_number):
        raise InvalidRoomNumberError(f"Invalid room number: {room_number!r}")
    return int(room_number)


def format_room_number(number: int) -> str:
    """Convert the stored integer form back to the external string form (7 -> "007")."""
    return f"{number:03d}"


class Room(BaseModel):
    """A hotel room."""

    number: str = Field(description="Three digit room number, e.g. '101'")
    state: int = Field(default=0, description="Integer status code of the room")

    @classmethod
    def from_row(cls, row: dict) -> "Room":
        """Build a Room from a database row."""
        return cls(number=format_room_number(row["number"]), state=row["state"])
