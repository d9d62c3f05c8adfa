"""Domain models."""

from src.models.reservation import NIL_ID, Guest, Reservation
from src.models.room import (
    Room,
    format_room_number,
    is_valid_room_number,
    room_number_to_int,
)

__all__ = [
    "NIL_ID",
    "Guest",
    "Reservation",
    "Room",
    "format_room_number",
    "is_valid_room_number",
    "room_number_to_int",
]
