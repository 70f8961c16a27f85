from .http_backend import HttpRoutingBackend
from .openrouteservice_routing_backend import OpenRouteServiceRoutingBackend
from .osrm_routing_backend import OsrmRoutingBackend

__all__ = [
    "HttpRoutingBackend",
    "OpenRouteServiceRoutingBackend",
    "OsrmRoutingBackend",
]
