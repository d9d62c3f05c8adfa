"""Database backends package."""

from src.db.base import CursorTransaction, Database, QueryRunner, Transaction
from src.db.factory import create_database
from src.db.postgres_database import PostgresDatabase
from src.db.sqlite_database import SQLiteDatabase

__all__ = [
    "Database",
    "QueryRunner",
    "Transaction",
    "CursorTransaction",
    "SQLiteDatabase",
    "PostgresDatabase",
    "create_database",
]
