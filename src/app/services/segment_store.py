from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from src.domain.algorithms.sequencing import (
    prune_invalid_segments,
    renumber_waypoints,
    sum_segments,
)
from src.domain.models import Route, Segment


@dataclass(slots=True)
class SegmentStore:
    """Ordered segment collection of a route aggregate.

    Operations mutate the in-memory aggregate only. The caller persists the
    aggregate through `IRouteRepository.save`, which writes waypoints and
    segments together.
    """

    def replace_all(self, route: Route, segments: Iterable[Segment]) -> None:
        route.segments = sorted(segments, key=lambda s: s.sequence)

    def delete_range(self, route: Route, sequence_from: int, sequence_to: int) -> int:
        """Delete segments with `sequence_from <= sequence <= sequence_to`."""

        before = len(route.segments)
        route.segments = [
            s
            for s in route.segments
            if not (sequence_from <= s.sequence <= sequence_to)
        ]
        return before - len(route.segments)

    def add(self, route: Route, segment: Segment) -> None:
        route.segments = sorted([*route.segments, segment], key=lambda s: s.sequence)

    def renumber(self, route: Route) -> None:
        """Compact waypoint sequences and re-derive segment sequences from them.

        Segments that no longer connect two adjacent waypoints are dropped.
        """

        route.waypoints = renumber_waypoints(route.waypoints)
        route.segments = prune_invalid_segments(route.segments, route.waypoints)

    def sum_totals(self, route: Route) -> tuple[float, float]:
        return sum_segments(route.segments)
