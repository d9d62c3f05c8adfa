"""Maps (method, path) pairs onto handler methods."""

import re
from typing import Any, Callable, Optional

from structlog import get_logger

from src.api.handlers import Body, ReservationHandler, RoomHandler
from src.api.response import ApiResponse

logger = get_logger(__name__)

RouteTarget = Callable[..., ApiResponse]


class Router:
    """Routes requests to the reservation and room handlers.

    Paths may carry an ``/api`` prefix and a trailing slash. Specific routes
    (``/reservation/upcoming``, ``/room/checkRoomAvailability``) are
    registered before the ``{id}`` routes they would otherwise match.
    """

    def __init__(self, reservations: ReservationHandler, rooms: RoomHandler):
        self.routes: list[tuple[str, re.Pattern[str], RouteTarget]] = []

        self.add_route("GET", r"/reservation", lambda req: reservations.list_reservations())
        self.add_route("GET", r"/reservation/upcoming", lambda req: reservations.list_upcoming())
        self.add_route("GET", r"/reservation/(?P<reservation_id>[^/]+)", lambda req, reservation_id: reservations.get_reservation(reservation_id))
        self.add_route("POST", r"/reservation", lambda req: reservations.book_reservation(req["body"]))
        self.add_route("DELETE", r"/reservation/(?P<reservation_id>[^/]+)", lambda req, reservation_id: reservations.delete_reservation(reservation_id))

        self.add_route("GET", r"/room", lambda req: rooms.list_rooms())
        self.add_route("GET", r"/room/checkRoomAvailability", lambda req: rooms.check_availability(req["query"]))
        self.add_route("GET", r"/room/(?P<number>[^/]+)", lambda req, number: rooms.get_room(number))
        self.add_route("POST", r"/room", lambda req: rooms.create_room(req["body"]))
        self.add_route("DELETE", r"/room/(?P<number>[^/]+)", lambda req, number: rooms.delete_room(number))

    def add_route(self, method: str, pattern: str, target: RouteTarget) -> "Router":
        """Register a route.

        Args:
            method: HTTP method
            pattern: Path regex; named groups are passed to the target as keyword arguments
            target: Callable receiving the request dict and path parameters

        Returns:
            Self for method chaining
        """
        self.routes.append((method.upper(), re.compile(f"^{pattern}$"), target))
        return self

    def dispatch(
        self,
        method: str,
        path: str,
        query: Optional[dict[str, str]] = None,
        body: Body = None,
    ) -> ApiResponse:
        """Handle one request.

        Returns:
            Handler response, 404 for unknown paths, 405 for known paths
            with an unsupported method
        """
        method = method.upper()
        path = self._normalize(path)
        request: dict[str, Any] = {"query": query or {}, "body": body}

        path_matched = False
        for route_method, pattern, target in self.routes:
            match = pattern.match(path)
            if not match:
                continue
            path_matched = True
            if route_method != method:
                continue

            logger.debug("Dispatching request", method=method, path=path)
            try:
                return target(request, **match.groupdict())
            except Exception as e:
                logger.error(
                    "Unhandled error in request handler",
                    method=method,
                    path=path,
                    error=str(e),
                    exc_info=True,
                )
                return ApiResponse.error(500, "Internal Server Error")

        if path_matched:
            return ApiResponse.error(405, f"Method {method} not allowed for {path}")
        return ApiResponse.error(404, f"No route for {path}")

    @staticmethod
    def _normalize(path: str) -> str:
        path = "/" + path.strip("/")
        if path == "/api" or path.startswith("/api/"):
            path = path[len("/api"):] or "/"
        return path
