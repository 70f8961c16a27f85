from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from src.app.config import BackendKind
from src.domain.models import CalculationStatus, Route, Segment, Waypoint

MAX_IN_PROGRESS_PERCENTAGE = 95.0


def estimate_calculation_time(waypoint_count: int, backend: BackendKind) -> int:
    """Heuristic seconds for a full calculation; only used for progress display."""

    pairs = max(0, int(waypoint_count) - 1)
    if backend is BackendKind.EXTERNAL:
        return max(5, 2 * pairs)
    return max(2, 1 * pairs)


@dataclass(frozen=True, slots=True)
class CalculationStatusView:
    route_id: str
    status: CalculationStatus
    started_at: datetime | None
    completed_at: datetime | None
    error: str | None
    backend: str
    total_segments: int
    calculated_segments: int
    elapsed_seconds: float | None = None
    estimated_total_seconds: int | None = None
    progress_percentage: float | None = None
    waypoints: tuple[Waypoint, ...] = field(default_factory=tuple)
    segments: tuple[Segment, ...] = field(default_factory=tuple)

    def as_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "route_id": self.route_id,
            "status": self.status.value,
            "started_at": _iso(self.started_at),
            "completed_at": _iso(self.completed_at),
            "error": self.error,
            "backend": self.backend,
            "total_segments": self.total_segments,
            "calculated_segments": self.calculated_segments,
            "elapsed_seconds": self.elapsed_seconds,
            "estimated_total_seconds": self.estimated_total_seconds,
            "progress_percentage": self.progress_percentage,
        }
        if self.status is CalculationStatus.COMPLETED:
            out["waypoints"] = [
                {
                    "id": w.id,
                    "sequence": w.sequence,
                    "name": w.name,
                    "description": w.description,
                    "lat": w.location.lat,
                    "lon": w.location.lon,
                }
                for w in self.waypoints
            ]
            out["segments"] = [
                {
                    "sequence": s.sequence,
                    "start_waypoint_id": s.start_waypoint_id,
                    "end_waypoint_id": s.end_waypoint_id,
                    "distance_m": s.distance_m,
                    "duration_s": s.duration_s,
                    "geometry": s.geometry,
                    "profile": s.profile,
                }
                for s in self.segments
            ]
        return out


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass(frozen=True, slots=True)
class CalculationStatusTracker:
    """Read model over a route's status fields plus wall-clock time.

    Never touches the routing backend or the segment cache.
    """

    backend: BackendKind

    def estimate(self, waypoint_count: int) -> int:
        return estimate_calculation_time(waypoint_count, self.backend)

    def status(
        self, route: Route, *, now: datetime | None = None
    ) -> CalculationStatusView:
        now = now or datetime.now(timezone.utc)
        status = route.calculation_status

        elapsed: float | None = None
        estimated: int | None = None
        progress: float | None = None

        if status is CalculationStatus.CALCULATING:
            estimated = self.estimate(len(route.waypoints))
            if route.calculation_started_at is not None:
                elapsed = max(0.0, (now - route.calculation_started_at).total_seconds())
                progress = min(MAX_IN_PROGRESS_PERCENTAGE, elapsed / estimated * 100.0)
            else:
                progress = 0.0
        elif status is CalculationStatus.COMPLETED:
            progress = 100.0

        completed = status is CalculationStatus.COMPLETED
        return CalculationStatusView(
            route_id=route.id,
            status=status,
            started_at=route.calculation_started_at,
            completed_at=route.calculation_completed_at,
            error=route.calculation_error,
            backend=self.backend.value,
            total_segments=max(0, len(route.waypoints) - 1),
            calculated_segments=len(route.segments),
            elapsed_seconds=elapsed,
            estimated_total_seconds=estimated,
            progress_percentage=round(progress, 2) if progress is not None else None,
            waypoints=tuple(route.waypoints) if completed else (),
            segments=tuple(route.segments) if completed else (),
        )
