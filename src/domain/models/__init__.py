from .geo import GeoPoint
from .route import CalculationStatus, Route
from .segment import CacheEntry, PathResult, Segment
from .waypoint import Waypoint

__all__ = [
    "CacheEntry",
    "CalculationStatus",
    "GeoPoint",
    "PathResult",
    "Route",
    "Segment",
    "Waypoint",
]
