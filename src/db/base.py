"""Transactional database interface shared by the storage backends."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Any, Callable, Mapping, Optional
from uuid import UUID

Params = Optional[Mapping[str, Any]]


class QueryRunner(ABC):
    """Parameterized query execution.

    SQL is written with ``:name`` placeholders; backends translate them
    to their driver's paramstyle.
    """

    @abstractmethod
    def execute(self, sql: str, params: Params = None) -> int:
        """Run a statement and return the number of affected rows."""
        ...

    @abstractmethod
    def fetch_one(self, sql: str, params: Params = None) -> Optional[dict[str, Any]]:
        """Return the first row as a dict, or None."""
        ...

    @abstractmethod
    def fetch_all(self, sql: str, params: Params = None) -> list[dict[str, Any]]:
        """Return all rows as dicts."""
        ...

    def scalar(self, sql: str, params: Params = None) -> Any:
        """Return the first column of the first row, or None."""
        row = self.fetch_one(sql, params)
        if not row:
            return None
        return next(iter(row.values()))


class Transaction(QueryRunner):
    """Query runner bound to an open transaction."""

    pass


class CursorTransaction(Transaction):
    """Transaction backed by a DB-API cursor."""

    def __init__(
        self,
        cursor: Any,
        adapt_sql: Callable[[str], str] = lambda sql: sql,
        adapt_value: Callable[[Any], Any] = lambda value: value,
    ):
        self.cursor = cursor
        self._adapt_sql = adapt_sql
        self._adapt_value = adapt_value

    def _params(self, params: Params) -> dict[str, Any]:
        adapted = {}
        for key, value in (params or {}).items():
            if isinstance(value, UUID):
                value = str(value)
            adapted[key] = self._adapt_value(value)
        return adapted

    def execute(self, sql: str, params: Params = None) -> int:
        self.cursor.execute(self._adapt_sql(sql), self._params(params))
        return self.cursor.rowcount

    def fetch_one(self, sql: str, params: Params = None) -> Optional[dict[str, Any]]:
        self.cursor.execute(self._adapt_sql(sql), self._params(params))
        row = self.cursor.fetchone()
        return dict(row) if row else None

    def fetch_all(self, sql: str, params: Params = None) -> list[dict[str, Any]]:
        self.cursor.execute(self._adapt_sql(sql), self._params(params))
        return [dict(row) for row in self.cursor.fetchall()]


class Database(QueryRunner):
    """A relational store that supports atomic transactions.

    Backends implement ``transaction()``; single statements run in their own
    short transaction. ``transaction()`` commits on normal exit, rolls back
    on any exception, and raises driver errors as ``StorageError``.
    """

    backend: str = "unknown"

    @abstractmethod
    def transaction(self) -> AbstractContextManager[Transaction]:
        """Open an atomic unit of work."""
        ...

    @abstractmethod
    def init_schema(self) -> None:
        """Create tables and indexes if they do not exist."""
        ...

    def close(self) -> None:
        """Release held connections."""
        pass

    def execute(self, sql: str, params: Params = None) -> int:
        with self.transaction() as tx:
            return tx.execute(sql, params)

    def fetch_one(self, sql: str, params: Params = None) -> Optional[dict[str, Any]]:
        with self.transaction() as tx:
            return tx.fetch_one(sql, params)

    def fetch_all(self, sql: str, params: Params = None) -> list[dict[str, Any]]:
        with self.transaction() as tx:
            return tx.fetch_all(sql, params)
