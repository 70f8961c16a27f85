class RoutingError(Exception):
    """Base exception for route calculation failures."""


class InsufficientWaypoints(RoutingError):
    """Raised when a route has fewer than two waypoints to connect."""


class RouteNotFound(RoutingError):
    pass


class WaypointNotFound(RoutingError):
    pass


class CalculationInProgress(RoutingError):
    """Raised when a calculation is requested while one is already running."""


class ConcurrentModification(RoutingError):
    """Raised when a route write is based on a stale version of the aggregate."""


class ConfigurationError(RoutingError):
    """Raised at construction time when required settings are missing."""


class BackendError(RoutingError):
    """A classified failure of the routing backend."""

    def __init__(self, message: str, *, backend: str | None = None) -> None:
        super().__init__(message)
        self.backend = backend

    def describe(self) -> str:
        return f"{type(self).__name__}: {self}"


class BackendUnreachable(BackendError):
    """Network failure or timeout while talking to the backend."""


class BackendBadResponse(BackendError):
    """The backend answered, but without a usable route."""


class BackendUnauthorized(BackendError):
    """Missing or rejected credential (external backend only)."""
