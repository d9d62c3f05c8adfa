"""Tests for the storage backends, backend selection and settings."""

import logging
from unittest.mock import MagicMock, patch

import psycopg2
import psycopg2.errors
import pytest
import structlog

from src.config.logging import add_room_number_prefix, bind_request_context, configure_logging
from src.config.settings import BookingSettings, CacheSettings, DatabaseSettings, LoggingSettings, Settings
from src.db import PostgresDatabase, SQLiteDatabase, create_database
from src.db.postgres_database import to_pyformat
from src.exceptions import StorageError


@pytest.fixture
def memory_db():
    database = SQLiteDatabase(":memory:")
    database.init_schema()
    yield database
    database.close()


class TestCreateDatabase:
    """Tests for URL-based backend selection."""

    def test_sqlite_url(self, tmp_path):
        database = create_database(f"sqlite:///{tmp_path / 'data' / 'hotel.db'}")

        assert isinstance(database, SQLiteDatabase)
        assert database.backend == "sqlite"
        assert (tmp_path / "data").is_dir()
        database.close()

    def test_sqlite_memory_url(self):
        database = create_database("sqlite:///:memory:")
        assert database.db_path == ":memory:"
        database.close()

    @pytest.mark.parametrize("url", ["postgresql://u:p@localhost/hotel", "postgres://localhost/hotel"])
    def test_postgres_url_does_not_connect(self, url):
        with patch("src.db.postgres_database.psycopg2.connect") as connect:
            database = create_database(url, timeout=5)

        assert isinstance(database, PostgresDatabase)
        assert database.timeout == 5
        connect.assert_not_called()

    def test_unsupported_url(self):
        with pytest.raises(ValueError, match="Unsupported database URL"):
            create_database("mysql://localhost/hotel")


class TestSQLiteTransactions:
    """Tests for commit / rollback semantics."""

    def test_commit_on_success(self, memory_db):
        with memory_db.transaction() as tx:
            tx.execute("INSERT INTO rooms (number, state) VALUES (:number, 0)", {"number": 101})

        assert memory_db.scalar("SELECT COUNT(1) FROM rooms") == 1

    def test_rollback_on_exception(self, memory_db):
        with pytest.raises(RuntimeError):
            with memory_db.transaction() as tx:
                tx.execute("INSERT INTO rooms (number, state) VALUES (:number, 0)", {"number": 101})
                raise RuntimeError("abort")

        assert memory_db.scalar("SELECT COUNT(1) FROM rooms") == 0

    def test_driver_error_becomes_storage_error(self, memory_db):
        with pytest.raises(StorageError) as exc_info:
            with memory_db.transaction() as tx:
                tx.execute("INSERT INTO rooms (number, state) VALUES (:number, 0)", {"number": 101})
                tx.execute("INSERT INTO rooms (number, state) VALUES (:number, 0)", {"number": 101})

        assert exc_info.value.cause is not None
        assert memory_db.scalar("SELECT COUNT(1) FROM rooms") == 0

    def test_foreign_keys_enforced(self, memory_db):
        with pytest.raises(StorageError):
            memory_db.execute(
                "INSERT INTO reservations (id, room_number, guest_email, start_at, end_at) "
                "VALUES ('x', 404, 'nobody@b.com', '2025-01-01', '2025-01-02')"
            )

    def test_scalar_and_fetch_helpers(self, memory_db):
        assert memory_db.fetch_one("SELECT number FROM rooms") is None
        assert memory_db.fetch_all("SELECT number FROM rooms") == []
        assert memory_db.scalar("SELECT number FROM rooms") is None


class TestPostgresDatabase:
    """Tests for the PostgreSQL backend with a mocked driver."""

    def test_to_pyformat(self):
        sql = "SELECT id FROM reservations WHERE room_number = :room AND start_at < :end_at"
        assert to_pyformat(sql) == (
            "SELECT id FROM reservations WHERE room_number = %(room)s AND start_at < %(end_at)s"
        )

    def test_to_pyformat_leaves_casts_alone(self):
        assert to_pyformat("SELECT :value::text") == "SELECT %(value)s::text"

    def test_commits_and_closes(self):
        conn = MagicMock()
        with patch("src.db.postgres_database.psycopg2.connect", return_value=conn):
            database = PostgresDatabase("postgresql://localhost/hotel")
            with database.transaction() as tx:
                tx.execute("DELETE FROM rooms WHERE number = :number", {"number": 101})

        conn.cursor.return_value.execute.assert_called_once_with(
            "DELETE FROM rooms WHERE number = %(number)s", {"number": 101}
        )
        conn.commit.assert_called_once()
        conn.close.assert_called_once()

    def test_driver_error_rolls_back(self):
        conn = MagicMock()
        conn.cursor.return_value.execute.side_effect = psycopg2.OperationalError("could not serialize access")
        with patch("src.db.postgres_database.psycopg2.connect", return_value=conn):
            database = PostgresDatabase("postgresql://localhost/hotel")
            with pytest.raises(StorageError):
                with database.transaction() as tx:
                    tx.execute("SELECT 1")

        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()
        conn.close.assert_called_once()

    @pytest.mark.parametrize(
        "error",
        [
            psycopg2.errors.UniqueViolation("duplicate key value violates unique constraint \"guests_pkey\""),
            psycopg2.errors.SerializationFailure("could not serialize access due to concurrent update"),
        ],
    )
    def test_concurrent_write_conflict_logged_as_conflict(self, error):
        """Two first bookings for one new guest email: the loser fails cleanly without retry."""
        conn = MagicMock()
        conn.cursor.return_value.execute.side_effect = error
        with patch("src.db.postgres_database.psycopg2.connect", return_value=conn), patch(
            "src.db.postgres_database.logger"
        ) as logger:
            database = PostgresDatabase("postgresql://localhost/hotel")
            with pytest.raises(StorageError) as exc_info:
                with database.transaction() as tx:
                    tx.execute(
                        "INSERT INTO guests (email, name) VALUES (:email, :name) ON CONFLICT (email) DO NOTHING",
                        {"email": "a@b.com", "name": "a@b.com"},
                    )

        assert exc_info.value.cause is error
        conn.rollback.assert_called_once()
        conn.cursor.return_value.execute.assert_called_once()
        logger.warning.assert_called_once()
        assert logger.warning.call_args.args[0] == "PostgreSQL transaction conflict"
        assert logger.warning.call_args.kwargs["conflict"] == type(error).__name__
        logger.error.assert_not_called()

    def test_connection_failure(self):
        with patch(
            "src.db.postgres_database.psycopg2.connect",
            side_effect=psycopg2.OperationalError("refused"),
        ):
            database = PostgresDatabase("postgresql://localhost/hotel")
            with pytest.raises(StorageError, match="Could not connect"):
                database.fetch_all("SELECT 1")


class TestSettings:
    """Tests for configuration defaults and environment overrides."""

    def test_defaults(self):
        assert CacheSettings().availability_ttl_seconds == 900
        assert BookingSettings().min_duration_days == 1
        assert BookingSettings().max_duration_days == 30
        assert DatabaseSettings().url == "sqlite:///hotel.db"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://db/hotel")
        monkeypatch.setenv("CACHE_AVAILABILITY_TTL_SECONDS", "60")

        assert DatabaseSettings().url == "postgresql://db/hotel"
        assert CacheSettings().availability_ttl_seconds == 60

    def test_uses_postgres(self):
        assert not Settings().uses_postgres
        assert Settings(database=DatabaseSettings(url="postgres://db/hotel")).uses_postgres


class TestLogging:
    """Tests for the room number log prefix."""

    def test_prefixes_event_with_room_number(self):
        event = add_room_number_prefix(None, "info", {"event": "Reservation booked", "room_number": "101"})
        assert event["event"] == "[101] Reservation booked"

    def test_leaves_event_without_room_number(self):
        event = add_room_number_prefix(None, "info", {"event": "Application built"})
        assert event["event"] == "Application built"

    def test_request_context_replaces_previous_request(self):
        bind_request_context(request_id="req-1", path="/room")
        bind_request_context(request_id="req-2")

        assert structlog.contextvars.get_contextvars() == {"request_id": "req-2"}
        structlog.contextvars.clear_contextvars()

    def test_configure_logging_console_format(self):
        root = logging.getLogger()
        previous_handlers, previous_level = list(root.handlers), root.level
        try:
            configure_logging(LoggingSettings(level="DEBUG", format="console"))

            assert root.level == logging.DEBUG
            assert len(root.handlers) == 1
            assert logging.getLogger("redis").level == logging.WARNING
        finally:
            root.handlers[:] = previous_handlers
            root.setLevel(previous_level)
            structlog.reset_defaults()
