"""Reservation store: transactional create/read/delete of reservations."""

from datetime import datetime, timezone
from typing import Optional, Union
from uuid import UUID

from structlog import get_logger

from src.db.base import Database, QueryRunner
from src.exceptions import (
    NotFoundError,
    RoomNotFoundError,
    RoomUnavailableError,
    StorageError,
)
from src.models.reservation import Guest, Reservation, to_utc_naive
from src.models.room import room_number_to_int

logger = get_logger(__name__)

_COLUMNS = "id, room_number, guest_email, start_at, end_at, checked_in, checked_out"

# [s1, e1) and [s2, e2) overlap iff s1 < e2 and s2 < e1
_OVERLAP_COUNT_SQL = """
    SELECT COUNT(1) AS overlapping
    FROM reservations
    WHERE room_number = :room_number
      AND start_at < :end_at
      AND :start_at < end_at
"""


class ReservationRepository:
    """Owns the persisted reservation, guest and room-reference rows."""

    def __init__(self, db: Database):
        """Initialize the repository.

        Args:
            db: Database backend supporting transactions
        """
        self.db = db

    def list_all(self) -> list[Reservation]:
        """Return all reservations (empty list when there are none)."""
        rows = self.db.fetch_all(f"SELECT {_COLUMNS} FROM reservations ORDER BY start_at")
        return [Reservation.from_row(row) for row in rows]

    def get(self, reservation_id: Union[UUID, str]) -> Reservation:
        """Find a reservation by id.

        Raises:
            NotFoundError: If no reservation has this id
        """
        row = self.db.fetch_one(
            f"SELECT {_COLUMNS} FROM reservations WHERE id = :id",
            {"id": str(reservation_id)},
        )
        if row is None:
            raise NotFoundError(f"Reservation {reservation_id} not found")
        return Reservation.from_row(row)

    def create(self, reservation: Reservation) -> Reservation:
        """Persist a new reservation atomically.

        Within one transaction: assign an id if nil, upsert the guest by
        existence, check that the room exists, re-check that no reservation
        overlaps, and insert. Nothing is persisted unless every step succeeds.

        Args:
            reservation: Reservation to store (nil id means server-assigned)

        Returns:
            The reservation as constructed, with its final id

        Raises:
            RoomNotFoundError: If the room does not exist
            RoomUnavailableError: If the dates overlap an existing reservation
            StorageError: For any other failure, wrapping the original cause
        """
        reservation = reservation.with_generated_id()
        room_number = room_number_to_int(reservation.room_number)

        try:
            with self.db.transaction() as tx:
                self._ensure_guest(tx, reservation.guest_email)

                room_exists = tx.scalar(
                    "SELECT COUNT(1) AS n FROM rooms WHERE number = :number",
                    {"number": room_number},
                )
                if not room_exists:
                    raise RoomNotFoundError(f"Room {reservation.room_number} not found")

                overlapping = tx.scalar(
                    _OVERLAP_COUNT_SQL,
                    {
                        "room_number": room_number,
                        "start_at": reservation.start,
                        "end_at": reservation.end,
                    },
                )
                if overlapping:
                    raise RoomUnavailableError(
                        f"Room {reservation.room_number} is already booked for the selected dates"
                    )

                inserted = tx.execute(
                    f"INSERT INTO reservations ({_COLUMNS}) VALUES"
                    " (:id, :room_number, :guest_email, :start_at, :end_at, :checked_in, :checked_out)",
                    {
                        "id": reservation.id,
                        "room_number": room_number,
                        "guest_email": reservation.guest_email,
                        "start_at": reservation.start,
                        "end_at": reservation.end,
                        "checked_in": reservation.checked_in,
                        "checked_out": reservation.checked_out,
                    },
                )
                if inserted == 0:
                    raise StorageError("Failed to insert the reservation")

        except (RoomNotFoundError, RoomUnavailableError):
            raise
        except StorageError as e:
            logger.error(
                "Reservation create rolled back",
                reservation_id=str(reservation.id),
                room_number=reservation.room_number,
                error=str(e),
            )
            raise
        except Exception as e:
            logger.error(
                "Unexpected error while creating reservation",
                reservation_id=str(reservation.id),
                room_number=reservation.room_number,
                error=str(e),
                exc_info=True,
            )
            raise StorageError(
                f"An error occurred while creating the reservation: {e}", cause=e
            ) from e

        logger.info(
            "Reservation created",
            reservation_id=str(reservation.id),
            room_number=reservation.room_number,
        )
        return reservation

    def delete(self, reservation_id: Union[UUID, str]) -> bool:
        """Delete a reservation.

        Returns:
            True if a row was removed, False if no reservation had this id
        """
        deleted = self.db.execute(
            "DELETE FROM reservations WHERE id = :id",
            {"id": str(reservation_id)},
        )
        return deleted > 0

    def list_upcoming(self, now: Optional[datetime] = None) -> list[Reservation]:
        """Return reservations starting after ``now`` (default: current UTC time), earliest first."""
        now = to_utc_naive(now) if now else datetime.now(timezone.utc).replace(tzinfo=None)
        rows = self.db.fetch_all(
            f"SELECT {_COLUMNS} FROM reservations WHERE start_at > :now ORDER BY start_at ASC",
            {"now": now},
        )
        return [Reservation.from_row(row) for row in rows]

    def has_overlap(self, room_number: str, start: datetime, end: datetime) -> bool:
        """True if any reservation for the room overlaps [start, end)."""
        overlapping = self.db.scalar(
            _OVERLAP_COUNT_SQL,
            {
                "room_number": room_number_to_int(room_number),
                "start_at": to_utc_naive(start),
                "end_at": to_utc_naive(end),
            },
        )
        return bool(overlapping)

    @staticmethod
    def _ensure_guest(tx: QueryRunner, email: str) -> None:
        """Insert a guest row for the email unless one exists. Existing rows are left untouched.

        A single conditional insert, so an existing guest never raises. Two
        concurrent first bookings for the same new email can still conflict on
        PostgreSQL; the loser's transaction fails with StorageError and is not
        retried.
        """
        guest = Guest(email=email, name=email)
        created = tx.execute(
            "INSERT INTO guests (email, name) VALUES (:email, :name)"
            " ON CONFLICT (email) DO NOTHING",
            guest.model_dump(),
        )
        if created:
            logger.debug("Guest created", guest_email=email)
