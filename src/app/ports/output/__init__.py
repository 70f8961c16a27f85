from .queue_service import IQueueService
from .route_repository import IRouteRepository
from .routing_backend import ConnectivityReport, IRoutingBackend
from .segment_cache import ISegmentCache

__all__ = [
    "ConnectivityReport",
    "IQueueService",
    "IRouteRepository",
    "IRoutingBackend",
    "ISegmentCache",
]
