from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from .segment import Segment
from .waypoint import Waypoint


class CalculationStatus(str, Enum):
    NOT_STARTED = "not_started"
    CALCULATING = "calculating"
    COMPLETED = "completed"
    ERROR = "error"
    FAILED = "failed"


@dataclass(slots=True)
class Route:
    """Route aggregate: owns its waypoints and segments.

    Waypoints and segments are kept ordered by sequence. Every persisted
    write goes through a repository that stores the aggregate as one unit.
    """

    id: str
    name: str
    profile: str
    owner_id: str | None = None
    waypoints: list[Waypoint] = field(default_factory=list)
    segments: list[Segment] = field(default_factory=list)

    total_distance_m: float = 0.0
    total_duration_s: float = 0.0
    last_calculated_at: datetime | None = None

    calculation_status: CalculationStatus = CalculationStatus.NOT_STARTED
    calculation_error: str | None = None
    calculation_started_at: datetime | None = None
    calculation_completed_at: datetime | None = None

    created_at: datetime | None = None
    version: int = 0

    def copy(self) -> "Route":
        # Waypoints and segments are frozen; copying the lists is enough.
        return replace(
            self, waypoints=list(self.waypoints), segments=list(self.segments)
        )

    def waypoint_by_id(self, waypoint_id: str) -> Waypoint | None:
        return next((w for w in self.waypoints if w.id == waypoint_id), None)
