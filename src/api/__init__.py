"""HTTP-facing request handling package."""

from src.api.handlers import ReservationHandler, RoomHandler
from src.api.response import ApiResponse
from src.api.router import Router

__all__ = [
    "ApiResponse",
    "ReservationHandler",
    "RoomHandler",
    "Router",
]
