"""Persistence repositories package."""

from src.repositories.reservation_repository import ReservationRepository
from src.repositories.room_repository import RoomRepository

__all__ = [
    "ReservationRepository",
    "RoomRepository",
]
