"""Pure helpers keeping waypoint and segment sequences consistent.

They are applied after every structural edit (insert, move, delete) so that
segment `i` always connects waypoint `i` and waypoint `i + 1`.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from src.domain.algorithms.segment_keys import segment_cache_key
from src.domain.models import Segment, Waypoint


def renumber_waypoints(waypoints: Iterable[Waypoint]) -> list[Waypoint]:
    """Return waypoints ordered by sequence and compacted to 0..N-1."""

    ordered = sorted(waypoints, key=lambda w: w.sequence)
    return [
        w if w.sequence == i else replace(w, sequence=i)
        for i, w in enumerate(ordered)
    ]


def adjacent_pairs(waypoints: list[Waypoint]) -> list[tuple[Waypoint, Waypoint]]:
    return list(zip(waypoints, waypoints[1:]))


def segment_connects(segment: Segment, start: Waypoint, end: Waypoint) -> bool:
    """True when the segment was produced for exactly this pair.

    Identities must match and the endpoint coordinates must still hash to the
    segment's cache key, so a moved waypoint invalidates its segments.
    """

    if segment.start_waypoint_id != start.id or segment.end_waypoint_id != end.id:
        return False
    expected = segment_cache_key(start.location, end.location, segment.profile)
    return segment.cache_key == expected


def prune_invalid_segments(
    segments: Iterable[Segment], waypoints: list[Waypoint]
) -> list[Segment]:
    """Keep only segments that connect adjacent waypoints, re-sequenced.

    `waypoints` must already be renumbered. Each surviving segment takes the
    sequence of its start waypoint; duplicates for one position keep the first.
    """

    by_id = {w.id: w for w in waypoints}
    kept: dict[int, Segment] = {}

    for seg in segments:
        start = by_id.get(seg.start_waypoint_id)
        if start is None or start.sequence + 1 >= len(waypoints):
            continue
        end = waypoints[start.sequence + 1]
        if not segment_connects(seg, start, end):
            continue
        if start.sequence in kept:
            continue
        if seg.sequence != start.sequence:
            seg = replace(seg, sequence=start.sequence)
        kept[start.sequence] = seg

    return [kept[i] for i in sorted(kept)]


def sum_segments(segments: Iterable[Segment]) -> tuple[float, float]:
    distance = 0.0
    duration = 0.0
    for seg in segments:
        distance += float(seg.distance_m)
        duration += float(seg.duration_s)
    return distance, duration
