from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Sequence
from uuid import uuid4

from src.app.ports.output import IRouteRepository
from src.domain.algorithms.sequencing import renumber_waypoints
from src.domain.exceptions import (
    CalculationInProgress,
    InsufficientWaypoints,
    RouteNotFound,
    WaypointNotFound,
)
from src.domain.models import CalculationStatus, GeoPoint, Route, Waypoint

from .calculation_status_tracker import CalculationStatusView
from .route_calculator import RouteCalculator
from .route_jobs_service import RouteJobsService

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WaypointDraft:
    location: GeoPoint
    name: str | None = None
    description: str | None = None


@dataclass(slots=True)
class RouteEditingService:
    """Use cases that change a route's waypoints.

    Every structural edit prunes the segments it invalidates and is saved as
    one write before the recalculation it triggers. Insert and move trigger a
    full calculation (inline, or through `jobs` when configured); delete runs
    the incremental recalculation in the same write as the removal.
    """

    repository: IRouteRepository
    calculator: RouteCalculator
    jobs: RouteJobsService | None = None
    default_profile: str = "driving-car"

    def create_route(
        self,
        *,
        name: str,
        waypoints: Sequence[WaypointDraft] = (),
        profile: str | None = None,
        owner_id: str | None = None,
    ) -> Route:
        route_id = str(uuid4())
        route = Route(
            id=route_id,
            name=name,
            profile=profile or self.default_profile,
            owner_id=owner_id,
            created_at=datetime.now(timezone.utc),
        )
        route.waypoints = [
            self._new_waypoint(route_id, i, draft) for i, draft in enumerate(waypoints)
        ]
        route = self.repository.save(route)

        if len(route.waypoints) >= 2:
            return self._trigger(route, force_recalculate=False)
        return route

    def get_route(self, route_id: str) -> Route:
        return self._load(route_id)

    def get_status(self, route_id: str) -> CalculationStatusView:
        route = self.calculator.expire_if_abandoned(self._load(route_id))
        return self.calculator.get_status(route)

    def insert_waypoint(
        self,
        route_id: str,
        draft: WaypointDraft,
        *,
        after_sequence: int | None = None,
    ) -> Route:
        """Insert after `after_sequence` (-1 for the head, None to append)."""

        route = self._load_idle(route_id)
        count = len(route.waypoints)

        if after_sequence is None:
            sequence = count
        elif -1 <= after_sequence < count:
            sequence = after_sequence + 1
        else:
            raise WaypointNotFound(
                f"Route {route_id} has no waypoint at sequence {after_sequence}"
            )

        shifted = [
            replace(w, sequence=w.sequence + 1) if w.sequence >= sequence else w
            for w in route.waypoints
        ]
        route.waypoints = renumber_waypoints(
            [*shifted, self._new_waypoint(route_id, sequence, draft)]
        )
        self.calculator.segment_store.renumber(route)
        route = self.repository.save(route)

        logger.info(
            "Waypoint inserted",
            extra={"route_id": route_id, "sequence": sequence},
        )
        if len(route.waypoints) >= 2:
            return self._trigger(route, force_recalculate=False)
        return route

    def move_waypoint(
        self, route_id: str, waypoint_id: str, location: GeoPoint
    ) -> Route:
        route = self._load_idle(route_id)
        if route.waypoint_by_id(waypoint_id) is None:
            raise WaypointNotFound(
                f"Waypoint {waypoint_id} not found in route {route_id}"
            )

        route.waypoints = [
            replace(w, location=location) if w.id == waypoint_id else w
            for w in route.waypoints
        ]
        # Segments touching the moved waypoint no longer match their cache key.
        self.calculator.segment_store.renumber(route)
        route = self.repository.save(route)

        logger.info(
            "Waypoint moved",
            extra={"route_id": route_id, "waypoint_id": waypoint_id},
        )
        if len(route.waypoints) >= 2:
            return self._trigger(route, force_recalculate=False)
        return route

    def delete_waypoint(self, route_id: str, waypoint_id: str) -> Route:
        route = self._load_idle(route_id)
        waypoint = route.waypoint_by_id(waypoint_id)
        if waypoint is None:
            raise WaypointNotFound(
                f"Waypoint {waypoint_id} not found in route {route_id}"
            )
        if len(route.waypoints) <= 2:
            raise InsufficientWaypoints("A route must keep at least 2 waypoints")

        route.waypoints = [w for w in route.waypoints if w.id != waypoint_id]
        logger.info(
            "Waypoint deleted",
            extra={"route_id": route_id, "sequence": waypoint.sequence},
        )
        return self.calculator.recalculate_after_waypoint_removal(
            route, waypoint.sequence
        )

    def recalculate(self, route_id: str, *, force_recalculate: bool = True) -> Route:
        route = self._load_idle(route_id)
        if len(route.waypoints) < 2:
            raise InsufficientWaypoints(
                f"Route {route_id} needs at least 2 waypoints, "
                f"has {len(route.waypoints)}"
            )
        return self._trigger(route, force_recalculate=force_recalculate)

    def delete_route(self, route_id: str) -> None:
        if not self.repository.delete(route_id):
            raise RouteNotFound(f"Route {route_id} not found")

    def _trigger(self, route: Route, *, force_recalculate: bool) -> Route:
        if self.jobs is not None:
            self.jobs.submit(route_id=route.id, force_recalculate=force_recalculate)
            return self._load(route.id)

        route = self.calculator.mark_calculating(route)
        return self.calculator.calculate_full(
            route, force_recalculate=force_recalculate
        )

    def _new_waypoint(
        self, route_id: str, sequence: int, draft: WaypointDraft
    ) -> Waypoint:
        return Waypoint(
            id=str(uuid4()),
            route_id=route_id,
            sequence=sequence,
            location=draft.location,
            name=draft.name or f"Waypoint {sequence + 1}",
            description=draft.description,
        )

    def _load(self, route_id: str) -> Route:
        route = self.repository.get(route_id)
        if route is None:
            raise RouteNotFound(f"Route {route_id} not found")
        return route

    def _load_idle(self, route_id: str) -> Route:
        route = self.calculator.expire_if_abandoned(self._load(route_id))
        if route.calculation_status is CalculationStatus.CALCULATING:
            raise CalculationInProgress(
                f"Route {route_id} is being calculated; retry once it finishes"
            )
        return route
