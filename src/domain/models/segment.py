from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class PathResult:
    """Pairwise path as returned by a routing backend."""

    distance_m: float
    duration_s: float
    geometry: str | None = None
    raw_instructions: tuple[dict, ...] = ()


@dataclass(frozen=True, slots=True)
class CacheEntry:
    distance_m: float
    duration_s: float
    geometry: str | None
    profile: str
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now


@dataclass(frozen=True, slots=True)
class Segment:
    """Computed path between waypoint `sequence` and `sequence + 1`."""

    route_id: str
    sequence: int
    start_waypoint_id: str
    end_waypoint_id: str
    distance_m: float
    duration_s: float
    geometry: str | None
    profile: str
    cache_key: str
    expires_at: datetime

    def __post_init__(self) -> None:
        if self.distance_m < 0:
            raise ValueError(f"Negative segment distance: {self.distance_m}")
        if self.duration_s < 0:
            raise ValueError(f"Negative segment duration: {self.duration_s}")
