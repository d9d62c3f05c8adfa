"""Pydantic models for reservations and guests."""

from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.models.room import format_room_number

NIL_ID = UUID(int=0)


def to_utc_naive(value: datetime) -> datetime:
    """Normalize a timestamp to naive UTC. Naive values are taken as UTC already."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class Guest(BaseModel):
    """Guest identified by email. Created implicitly the first time an email books."""

    email: str
    name: str


class Reservation(BaseModel):
    """A room reservation.

    Send the nil UUID (all zeros) as ``Id`` to have the server generate one.
    """

    id: UUID = Field(default=NIL_ID, alias="Id")
    room_number: str = Field(alias="RoomNumber")
    guest_email: str = Field(alias="GuestEmail")
    start: datetime = Field(alias="Start")
    end: datetime = Field(alias="End")
    checked_in: bool = Field(default=False, alias="CheckedIn")
    checked_out: bool = Field(default=False, alias="CheckedOut")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("id", mode="before")
    @classmethod
    def parse_id(cls, v):
        """Treat a missing/empty id as the nil id."""
        if v is None or v == "":
            return NIL_ID
        return v

    @field_validator("start", "end", mode="before")
    @classmethod
    def parse_date(cls, v):
        """Parse date-only strings to datetime."""
        if isinstance(v, str) and v and len(v) == 10:  # YYYY-MM-DD format
            try:
                return datetime.strptime(v, "%Y-%m-%d")
            except ValueError:
                pass
        return v

    @field_validator("start", "end")
    @classmethod
    def normalize_timezone(cls, v: datetime) -> datetime:
        return to_utc_naive(v)

    @property
    def has_nil_id(self) -> bool:
        """True when the caller left id assignment to the server."""
        return self.id == NIL_ID

    @property
    def duration_days(self) -> int:
        """Whole days between start and end (partial days are truncated)."""
        return (self.end - self.start).days

    def with_generated_id(self) -> "Reservation":
        """Return a copy carrying a fresh id if this one has the nil id."""
        if not self.has_nil_id:
            return self
        return self.model_copy(update={"id": uuid4()})

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Half-open overlap test: [self.start, self.end) vs [start, end)."""
        return self.start < to_utc_naive(end) and to_utc_naive(start) < self.end

    def to_api(self) -> dict[str, Any]:
        """Serialize using the public (PascalCase) field names."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Reservation":
        """Build a Reservation from a database row."""
        return cls(
            id=row["id"],
            room_number=format_room_number(row["room_number"]),
            guest_email=row["guest_email"],
            start=row["start_at"],
            end=row["end_at"],
            checked_in=bool(row["checked_in"]),
            checked_out=bool(row["checked_out"]),
        )
