"""Select a database backend from its connection URL."""

from structlog import get_logger

from src.db.base import Database
from src.db.postgres_database import PostgresDatabase
from src.db.sqlite_database import SQLiteDatabase

logger = get_logger(__name__)

SQLITE_PREFIX = "sqlite:///"
POSTGRES_PREFIXES = ("postgresql://", "postgres://")


def create_database(url: str, timeout: int = 30) -> Database:
    """Build the backend matching the URL scheme.

    Args:
        url: ``sqlite:///path/to/file.db``, ``sqlite:///:memory:`` or a
            ``postgresql://`` DSN
        timeout: Lock / connect timeout in seconds

    Returns:
        Database instance for the URL

    Raises:
        ValueError: If the URL scheme is not supported
    """
    if url.startswith(SQLITE_PREFIX):
        path = url[len(SQLITE_PREFIX):]
        logger.info("Using SQLite backend", db_path=path)
        return SQLiteDatabase(path, timeout=timeout)

    if url.startswith(POSTGRES_PREFIXES):
        logger.info("Using PostgreSQL backend")
        return PostgresDatabase(url, timeout=timeout)

    raise ValueError(f"Unsupported database URL: {url!r}")
