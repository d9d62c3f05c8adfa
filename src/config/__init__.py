"""Configuration package: settings and structured logging."""

from src.config.logging import bind_request_context, configure_logging, get_logger
from src.config.settings import Settings, settings

__all__ = ["settings", "Settings", "configure_logging", "bind_request_context", "get_logger"]
