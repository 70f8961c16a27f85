from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable

from src.app.config import EngineConfig
from src.app.ports.output import IRouteRepository, IRoutingBackend, ISegmentCache
from src.domain.algorithms.segment_keys import segment_cache_key
from src.domain.algorithms.sequencing import (
    adjacent_pairs,
    prune_invalid_segments,
    renumber_waypoints,
)
from src.domain.exceptions import (
    BackendError,
    CalculationInProgress,
    InsufficientWaypoints,
)
from src.domain.models import CacheEntry, CalculationStatus, Route, Segment, Waypoint

from .calculation_status_tracker import CalculationStatusTracker, CalculationStatusView
from .segment_store import SegmentStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class RouteCalculator:
    """Application service computing a route's segments and aggregates.

    - Each adjacent waypoint pair is resolved through the segment cache and,
      on a miss, the routing backend.
    - All changes to the route's totals and status happen here and are
      committed with a single repository write per operation.
    - Per-pair failures abort the pass; totals are never partially applied.
    """

    backend: IRoutingBackend
    repository: IRouteRepository
    config: EngineConfig
    segment_cache: ISegmentCache | None = None
    segment_store: SegmentStore = field(default_factory=SegmentStore)
    clock: Callable[[], datetime] = _utcnow

    tracker: CalculationStatusTracker = field(init=False)

    def __post_init__(self) -> None:
        self.tracker = CalculationStatusTracker(backend=self.config.backend)

    # Full recalculation

    def calculate_full(self, route: Route, *, force_recalculate: bool = False) -> Route:
        """Resolve every adjacent pair and commit the route in one write.

        Whatever aborts the pass, apart from too few waypoints, leaves the
        stored route in `error` so it can be recalculated.
        """

        try:
            return self._calculate_full(route, force_recalculate=force_recalculate)
        except (BackendError, InsufficientWaypoints):
            raise
        except Exception as exc:
            self._record_crash(route.id, exc)
            raise

    def _calculate_full(self, route: Route, *, force_recalculate: bool) -> Route:
        waypoints = renumber_waypoints(route.waypoints)
        if len(waypoints) < 2:
            raise InsufficientWaypoints(
                f"Route {route.id} needs at least 2 waypoints, has {len(waypoints)}"
            )

        started = time.monotonic()
        now = self.clock()
        if route.calculation_status is not CalculationStatus.CALCULATING:
            route.calculation_started_at = now

        reusable: dict[int, Segment] = {}
        if not force_recalculate:
            for seg in prune_invalid_segments(route.segments, waypoints):
                if seg.profile == route.profile and seg.expires_at > now:
                    reusable[seg.sequence] = seg

        planned: list[Segment] = []
        reused = 0
        try:
            for start, end in adjacent_pairs(waypoints):
                seg = reusable.get(start.sequence)
                if seg is None:
                    seg = self._compute_segment(route, start, end, now=now)
                else:
                    reused += 1
                planned.append(seg)
        except BackendError as exc:
            self._record_error(route, exc, computed=len(planned))
            raise

        route.waypoints = waypoints
        self.segment_store.replace_all(route, planned)
        self._commit_totals(route)

        logger.info(
            "Route calculated",
            extra={
                "route_id": route.id,
                "segments": len(planned),
                "reused_segments": reused,
                "backend": self.backend.name,
                "elapsed_ms": round((time.monotonic() - started) * 1000, 2),
            },
        )
        return self.repository.save(route)

    # Incremental recalculation

    def recalculate_after_waypoint_removal(
        self, route: Route, removed_sequence: int
    ) -> Route:
        """Close the gap left by a removed waypoint.

        The waypoint must already be absent from `route.waypoints`; the
        remaining ones still carry their pre-removal sequence numbers.
        """

        now = self.clock()
        if route.calculation_status is not CalculationStatus.CALCULATING:
            route.calculation_started_at = now

        # Segment sequences still follow the old numbering here.
        self.segment_store.delete_range(route, removed_sequence - 1, removed_sequence)
        self.segment_store.renumber(route)

        if 0 < removed_sequence < len(route.waypoints):
            prev_wp = route.waypoints[removed_sequence - 1]
            next_wp = route.waypoints[removed_sequence]
            try:
                bridge = self._compute_segment(route, prev_wp, next_wp, now=now)
            except BackendError as exc:
                self._record_error(route, exc, computed=0)
                raise
            self.segment_store.add(route, bridge)

        if len(route.segments) == max(0, len(route.waypoints) - 1):
            self._commit_totals(route)
        else:
            # Pairs were missing before the removal; keep the previous status
            # so callers still see the route needs a full calculation.
            distance, duration = self.segment_store.sum_totals(route)
            route.total_distance_m = distance
            route.total_duration_s = duration

        logger.info(
            "Route recalculated after waypoint removal",
            extra={
                "route_id": route.id,
                "removed_sequence": removed_sequence,
                "segments": len(route.segments),
            },
        )
        return self.repository.save(route)

    # Status

    def estimate_calculation_time(self, waypoint_count: int) -> int:
        return self.tracker.estimate(waypoint_count)

    def get_status(
        self, route: Route, *, now: datetime | None = None
    ) -> CalculationStatusView:
        return self.tracker.status(route, now=now or self.clock())

    def mark_calculating(self, route: Route) -> Route:
        route = self.expire_if_abandoned(route)
        if route.calculation_status is CalculationStatus.CALCULATING:
            raise CalculationInProgress(f"Route {route.id} is already calculating")
        route.calculation_status = CalculationStatus.CALCULATING
        route.calculation_started_at = self.clock()
        route.calculation_completed_at = None
        route.calculation_error = None
        return self.repository.save(route)

    def is_abandoned(self, route: Route, *, now: datetime | None = None) -> bool:
        """True for a `calculating` route that outlived every possible attempt."""

        if route.calculation_status is not CalculationStatus.CALCULATING:
            return False
        started = route.calculation_started_at
        if started is None:
            return True
        limit = self.config.abandon_after_s(len(route.waypoints) - 1)
        return ((now or self.clock()) - started).total_seconds() > limit

    def expire_if_abandoned(self, route: Route) -> Route:
        if not self.is_abandoned(route):
            return route
        started = route.calculation_started_at
        since = started.isoformat() if started else "an unknown time"
        logger.warning(
            "Abandoned calculation timed out",
            extra={"route_id": route.id, "started_at": since},
        )
        return self.mark_error(
            route, f"CalculationTimeout: calculating since {since} without finishing"
        )

    def mark_failed(self, route: Route, error: str) -> Route:
        """Terminal state set by the job collaborator once retries run out."""

        route.calculation_status = CalculationStatus.FAILED
        route.calculation_error = error[:4000]
        return self.repository.save(route)

    def mark_error(self, route: Route, error: str) -> Route:
        """The attempt failed; the route may be recalculated."""

        route.calculation_status = CalculationStatus.ERROR
        route.calculation_error = error[:4000]
        return self.repository.save(route)

    # Internals

    def _compute_segment(
        self, route: Route, start: Waypoint, end: Waypoint, *, now: datetime
    ) -> Segment:
        key = segment_cache_key(start.location, end.location, route.profile)
        entry = self._resolve_pair(key, start, end, route.profile, now=now)
        return Segment(
            route_id=route.id,
            sequence=start.sequence,
            start_waypoint_id=start.id,
            end_waypoint_id=end.id,
            distance_m=entry.distance_m,
            duration_s=entry.duration_s,
            geometry=entry.geometry,
            profile=entry.profile,
            cache_key=key,
            expires_at=entry.expires_at,
        )

    def _resolve_pair(
        self, key: str, start: Waypoint, end: Waypoint, profile: str, *, now: datetime
    ) -> CacheEntry:
        if self.segment_cache is not None:
            cached = self.segment_cache.get(key)
            if cached is not None:
                return cached

        path = self.backend.compute_path(start.location, end.location, profile)
        entry = CacheEntry(
            distance_m=float(path.distance_m),
            duration_s=float(path.duration_s),
            geometry=path.geometry,
            profile=profile,
            expires_at=now + timedelta(seconds=self.config.cache_ttl_s),
        )
        if self.segment_cache is not None:
            self.segment_cache.put(key, entry)
        return entry

    def _commit_totals(self, route: Route) -> None:
        now = self.clock()
        distance, duration = self.segment_store.sum_totals(route)
        route.total_distance_m = distance
        route.total_duration_s = duration
        route.last_calculated_at = now
        route.calculation_completed_at = now
        route.calculation_status = CalculationStatus.COMPLETED
        route.calculation_error = None

    def _record_error(self, route: Route, exc: BackendError, *, computed: int) -> None:
        logger.warning(
            "Route calculation failed",
            extra={
                "route_id": route.id,
                "backend": self.backend.name,
                "computed_segments": computed,
                "error": exc.describe(),
            },
        )
        self.mark_error(route, exc.describe())

    def _record_crash(self, route_id: str, exc: Exception) -> None:
        logger.exception(
            "Route calculation crashed",
            extra={"route_id": route_id, "backend": self.backend.name},
        )
        # The in-flight copy may be stale if the failing call was the save; a
        # route another writer already settled is left alone.
        current = self.repository.get(route_id)
        if (
            current is not None
            and current.calculation_status is CalculationStatus.CALCULATING
        ):
            self.mark_error(current, f"{type(exc).__name__}: {exc}")
