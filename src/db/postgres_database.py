"""PostgreSQL backend using psycopg2.

Each transaction opens its own connection at SERIALIZABLE isolation, so two
concurrent transactions that read and then write overlapping reservations
cannot both commit.
"""

import re
from contextlib import contextmanager
from typing import Iterator

import psycopg2
from psycopg2 import errors as pg_errors
from psycopg2.extensions import ISOLATION_LEVEL_SERIALIZABLE
from psycopg2.extras import RealDictCursor
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
    email       VARCHAR(255) PRIMARY KEY,
    name        VARCHAR(255) NOT NULL
);

CREATE TABLE IF NOT EXISTS reservations (
    id          VARCHAR(36) PRIMARY KEY,
    room_number INTEGER NOT NULL REFERENCES rooms(number),
    guest_email VARCHAR(255) NOT NULL REFERENCES guests(email),
    start_at    TIMESTAMP NOT NULL,
    end_at      TIMESTAMP NOT NULL,
    checked_in  BOOLEAN NOT NULL DEFAULT FALSE,
    checked_out BOOLEAN NOT NULL DEFAULT FALSE,
    CHECK (start_at < end_at)
);

CREATE INDEX IF NOT EXISTS idx_reservations_room_dates
    ON reservations (room_number, start_at, end_at);
"""

# Concurrent writers losing a SERIALIZABLE race or a duplicate guest insert
_CONFLICT_ERRORS = (pg_errors.SerializationFailure, pg_errors.UniqueViolation)

_NAMED_PARAM = re.compile(r"(?<!:):(\w+)")


def to_pyformat(sql: str) -> str:
    """Rewrite ``:name`` placeholders to psycopg2's ``%(name)s``."""
    return _NAMED_PARAM.sub(r"%(\1)s", sql)


class PostgresDatabase(Database):
    """PostgreSQL implementation of the transactional database interface."""

    backend = "postgresql"

    def __init__(self, dsn: str, timeout: int = 30):
        self.dsn = dsn
        self.timeout = timeout

    def _connect(self):
        try:
            conn = psycopg2.connect(
                self.dsn,
                connect_timeout=self.timeout,
                cursor_factory=RealDictCursor,
            )
        except psycopg2.Error as e:
            logger.error("PostgreSQL connection failed", error=str(e))
            raise StorageError("Could not connect to PostgreSQL", cause=e) from e
        conn.set_session(isolation_level=ISOLATION_LEVEL_SERIALIZABLE)
        return conn

    def init_schema(self) -> None:
        with self.transaction() as tx:
            tx.cursor.execute(_SCHEMA)
        logger.info("Database schema ready", backend=self.backend)

    @contextmanager
    def transaction(self) -> Iterator[CursorTransaction]:
        conn = self._connect()
        cursor = conn.cursor()
        try:
            yield CursorTransaction(cursor, adapt_sql=to_pyformat)
            conn.commit()
        except _CONFLICT_ERRORS as e:
            conn.rollback()
            logger.warning(
                "PostgreSQL transaction conflict",
                error=str(e),
                conflict=type(e).__name__,
            )
            raise StorageError(f"Transaction failed: {e}", cause=e) from e
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(
                "PostgreSQL transaction failed",
                error=str(e),
                pgcode=getattr(e, "pgcode", None),
            )
            raise StorageError(f"Transaction failed: {e}", cause=e) from e
        except BaseException:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()
