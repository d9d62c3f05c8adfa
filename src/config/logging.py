"""Structured logging configuration using structlog."""
import logging
import sys
from typing import Any, Optional

import structlog
from pythonjsonlogger import jsonlogger

from src.config.settings import LoggingSettings, settings

QUIET_LOGGERS = ("redis", "psycopg2")


def add_room_number_prefix(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Prefix the event with ``[room]`` when a room_number is bound.

    Runs before the renderer, so JSON and console output both carry it.
    """
    room_number = event_dict.get("room_number")
    if room_number:
        event_dict["event"] = f"[{room_number}] {event_dict.get('event', '')}"
    return event_dict


def _build_handler(log_settings: LoggingSettings) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    if log_settings.format == "json":
        handler.setFormatter(jsonlogger.JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
    return handler


def configure_logging(log_settings: Optional[LoggingSettings] = None) -> None:
    """Route structlog through stdlib logging.

    Args:
        log_settings: Level and format to use (defaults to settings.logging)
    """
    log_settings = log_settings or settings.logging
    log_level = getattr(logging, log_settings.level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(_build_handler(log_settings))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    renderer = (
        structlog.processors.JSONRenderer()
        if log_settings.format == "json"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            add_room_number_prefix,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_request_context(**context: Any) -> None:
    """Attach context (e.g. request_id) to every log event of the current request."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**context)


def get_logger(name: str) -> structlog.typing.FilteringBoundLogger:
    """Get a configured logger instance.

    Args:
        name: Logger name, typically __name__

    Returns:
        Configured logger instance
    """
    return structlog.get_logger(name)
