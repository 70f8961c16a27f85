from __future__ import annotations

from dataclasses import dataclass

from .geo import GeoPoint


@dataclass(frozen=True, slots=True)
class Waypoint:
    """A user-specified stop of a route.

    `sequence` is 0-based and contiguous within the owning route. Only the
    location (and the sequence, on renumbering) ever changes; both changes
    produce a new instance via `dataclasses.replace`.
    """

    id: str
    route_id: str
    sequence: int
    location: GeoPoint
    name: str
    description: str | None = None
