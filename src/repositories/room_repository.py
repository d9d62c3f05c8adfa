"""Room store."""

from typing import Optional

from structlog import get_logger

from src.db.base import Database
from src.models.room import Room, room_number_to_int

logger = get_logger(__name__)


class RoomRepository:
    """CRUD access to the rooms table."""

    def __init__(self, db: Database):
        self.db = db

    def list_all(self) -> list[Room]:
        rows = self.db.fetch_all("SELECT number, state FROM rooms ORDER BY number")
        return [Room.from_row(row) for row in rows]

    def get(self, room_number: str) -> Optional[Room]:
        row = self.db.fetch_one(
            "SELECT number, state FROM rooms WHERE number = :number",
            {"number": room_number_to_int(room_number)},
        )
        return Room.from_row(row) if row else None

    def create(self, room: Room) -> Room:
        """Insert a room.

        Raises:
            StorageError: If the room already exists or the insert fails
        """
        self.db.execute(
            "INSERT INTO rooms (number, state) VALUES (:number, :state)",
            {"number": room_number_to_int(room.number), "state": room.state},
        )
        logger.info("Room created", room_number=room.number)
        return room

    def delete(self, room_number: str) -> bool:
        """Delete a room. Returns False if no room had this number."""
        deleted = self.db.execute(
            "DELETE FROM rooms WHERE number = :number",
            {"number": room_number_to_int(room_number)},
        )
        return deleted > 0
