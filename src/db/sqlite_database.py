"""SQLite backend.

Use ":memory:" for tests, a file path for production. A single connection is
shared and guarded by a lock; every transaction starts with BEGIN IMMEDIATE so
writers are serialized.
"""

import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator

from structlog import get_logger

from src.db.base import CursorTransaction, Database
from src.exceptions import StorageError

logger = get_logger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS rooms (
    number      INTEGER PRIMARY KEY,
    state       INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS guests (
    email       TEXT PRIMARY KEY,
    name        TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS reservations (
    id          TEXT PRIMARY KEY,
    room_number INTEGER NOT NULL REFERENCES rooms(number),
    guest_email TEXT NOT NULL REFERENCES guests(email),
    start_at    TEXT NOT NULL,
    end_at      TEXT NOT NULL,
    checked_in  INTEGER NOT NULL DEFAULT 0,
    checked_out INTEGER NOT NULL DEFAULT 0,
    CHECK (start_at < end_at)
);

CREATE INDEX IF NOT EXISTS idx_reservations_room_dates
    ON reservations (room_number, start_at, end_at);
"""


def _adapt_value(value: Any) -> Any:
    # Fixed-width ISO text keeps lexicographic order equal to time order
    if isinstance(value, datetime):
        return value.isoformat(timespec="microseconds")
    if isinstance(value, bool):
        return int(value)
    return value


class SQLiteDatabase(Database):
    """SQLite implementation of the transactional database interface."""

    backend = "sqlite"

    def __init__(self, db_path: str = "hotel.db", timeout: int = 30):
        self.db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        try:
            self._conn = sqlite3.connect(
                db_path,
                timeout=timeout,
                isolation_level=None,  # transactions are opened explicitly
                check_same_thread=False,
            )
        except sqlite3.Error as e:
            logger.error("SQLite connection failed", db_path=db_path, error=str(e))
            raise StorageError(f"Could not open SQLite database: {db_path}", cause=e) from e

        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._lock = threading.RLock()
        logger.info("SQLite database opened", db_path=db_path)

    def init_schema(self) -> None:
        with self._lock:
            try:
                self._conn.executescript(_SCHEMA)
            except sqlite3.Error as e:
                logger.error("Schema creation failed", error=str(e))
                raise StorageError("Schema creation failed", cause=e) from e
        logger.info("Database schema ready", backend=self.backend)

    @contextmanager
    def transaction(self) -> Iterator[CursorTransaction]:
        with self._lock:
            cursor = self._conn.cursor()
            try:
                cursor.execute("BEGIN IMMEDIATE")
                yield CursorTransaction(cursor, adapt_value=_adapt_value)
                cursor.execute("COMMIT")
            except sqlite3.Error as e:
                self._rollback(cursor)
                logger.error("SQLite transaction failed", error=str(e))
                raise StorageError(f"Transaction failed: {e}", cause=e) from e
            except BaseException:
                self._rollback(cursor)
                raise
            finally:
                cursor.close()

    def _rollback(self, cursor: sqlite3.Cursor) -> None:
        if self._conn.in_transaction:
            cursor.execute("ROLLBACK")

    def close(self) -> None:
        with self._lock:
            self._conn.close()
        logger.debug("SQLite database closed", db_path=self.db_path)
