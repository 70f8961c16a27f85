from __future__ import annotations

from src.domain.models import GeoPoint

COORDINATE_PRECISION = 6


def _fmt(point: GeoPoint) -> str:
    # `+ 0.0` folds -0.0 into 0.0 so both hash to the same key.
    lat = round(point.lat, COORDINATE_PRECISION) + 0.0
    lon = round(point.lon, COORDINATE_PRECISION) + 0.0
    return f"{lat:.{COORDINATE_PRECISION}f},{lon:.{COORDINATE_PRECISION}f}"


def segment_cache_key(start: GeoPoint, end: GeoPoint, profile: str) -> str:
    """Deterministic cache key for a directed coordinate pair and profile.

    Independent of waypoint and route identity: the same pair of coordinates
    shares one entry across routes and after a waypoint moves back.
    """

    nt = (profile or "").strip().lower()
    return f"route_segment_{nt}_{_fmt(start)}_{_fmt(end)}"
