"""Application settings and configuration management."""
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Relational store configuration.

    The URL scheme selects the backend: ``sqlite:///path`` (or ``sqlite:///:memory:``)
    for SQLite, ``postgresql://...`` for PostgreSQL.
    """

    url: str = "sqlite:///hotel.db"
    timeout: int = 30  # Seconds to wait for a lock / connection

    model_config = SettingsConfigDict(env_prefix="DATABASE_")


class RedisSettings(BaseSettings):
    """Redis configuration for availability caching."""

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None
    ssl: bool = False
    decode_responses: bool = True
    socket_timeout: int = 5
    socket_connect_timeout: int = 5

    model_config = SettingsConfigDict(env_prefix="REDIS_")


class CacheSettings(BaseSettings):
    """Availability cache configuration."""

    backend: Literal["memory", "redis"] = "memory"
    availability_ttl_seconds: int = 900  # 15 minutes
    key_prefix: str = "availability"

    model_config = SettingsConfigDict(env_prefix="CACHE_")


class BookingSettings(BaseSettings):
    """Booking rules."""

    min_duration_days: int = 1
    max_duration_days: int = 30

    model_config = SettingsConfigDict(env_prefix="BOOKING_")


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "console"] = "json"

    model_config = SettingsConfigDict(env_prefix="LOG_")


class Settings(BaseSettings):
    """Main application settings."""

    environment: Literal["dev", "staging", "prod"] = "dev"
    debug: bool = False

    # Sub-settings
    database: DatabaseSettings = DatabaseSettings()
    redis: RedisSettings = RedisSettings()
    cache: CacheSettings = CacheSettings()
    booking: BookingSettings = BookingSettings()
    logging: LoggingSettings = LoggingSettings()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def uses_postgres(self) -> bool:
        """True when the database URL points at PostgreSQL."""
        return self.database.url.startswith(("postgresql://", "postgres://"))


# Global settings instance
settings = Settings()
