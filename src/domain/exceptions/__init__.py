from .routing import (
    BackendBadResponse,
    BackendError,
    BackendUnauthorized,
    BackendUnreachable,
    CalculationInProgress,
    ConcurrentModification,
    ConfigurationError,
    InsufficientWaypoints,
    RouteNotFound,
    RoutingError,
    WaypointNotFound,
)

__all__ = [
    "BackendBadResponse",
    "BackendError",
    "BackendUnauthorized",
    "BackendUnreachable",
    "CalculationInProgress",
    "ConcurrentModification",
    "ConfigurationError",
    "InsufficientWaypoints",
    "RouteNotFound",
    "RoutingError",
    "WaypointNotFound",
]
