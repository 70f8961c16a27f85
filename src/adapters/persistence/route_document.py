"""JSON document form of the Route aggregate, as stored by the repositories."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from src.domain.models import CalculationStatus, GeoPoint, Route, Segment, Waypoint


def _dt(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse_dt(raw: Any) -> datetime | None:
    return datetime.fromisoformat(raw) if isinstance(raw, str) and raw else None


def route_to_document(route: Route) -> dict[str, Any]:
    return {
        "id": route.id,
        "name": route.name,
        "profile": route.profile,
        "owner_id": route.owner_id,
        "total_distance_m": route.total_distance_m,
        "total_duration_s": route.total_duration_s,
        "last_calculated_at": _dt(route.last_calculated_at),
        "calculation_status": route.calculation_status.value,
        "calculation_error": route.calculation_error,
        "calculation_started_at": _dt(route.calculation_started_at),
        "calculation_completed_at": _dt(route.calculation_completed_at),
        "created_at": _dt(route.created_at),
        "version": route.version,
        "waypoints": [
            {
                "id": w.id,
                "sequence": w.sequence,
                "lat": w.location.lat,
                "lon": w.location.lon,
                "name": w.name,
                "description": w.description,
            }
            for w in route.waypoints
        ],
        "segments": [
            {
                "sequence": s.sequence,
                "start_waypoint_id": s.start_waypoint_id,
                "end_waypoint_id": s.end_waypoint_id,
                "distance_m": s.distance_m,
                "duration_s": s.duration_s,
                "geometry": s.geometry,
                "profile": s.profile,
                "cache_key": s.cache_key,
                "expires_at": _dt(s.expires_at),
            }
            for s in route.segments
        ],
    }


def route_from_document(doc: Mapping[str, Any]) -> Route:
    route_id = str(doc["id"])
    waypoints = [
        Waypoint(
            id=str(w["id"]),
            route_id=route_id,
            sequence=int(w["sequence"]),
            location=GeoPoint(lat=float(w["lat"]), lon=float(w["lon"])),
            name=str(w.get("name") or ""),
            description=w.get("description"),
        )
        for w in doc.get("waypoints") or ()
    ]
    segments = [
        Segment(
            route_id=route_id,
            sequence=int(s["sequence"]),
            start_waypoint_id=str(s["start_waypoint_id"]),
            end_waypoint_id=str(s["end_waypoint_id"]),
            distance_m=float(s["distance_m"]),
            duration_s=float(s["duration_s"]),
            geometry=s.get("geometry"),
            profile=str(s["profile"]),
            cache_key=str(s["cache_key"]),
            expires_at=datetime.fromisoformat(s["expires_at"]),
        )
        for s in doc.get("segments") or ()
    ]
    return Route(
        id=route_id,
        name=str(doc.get("name") or ""),
        profile=str(doc["profile"]),
        owner_id=doc.get("owner_id"),
        waypoints=sorted(waypoints, key=lambda w: w.sequence),
        segments=sorted(segments, key=lambda s: s.sequence),
        total_distance_m=float(doc.get("total_distance_m") or 0.0),
        total_duration_s=float(doc.get("total_duration_s") or 0.0),
        last_calculated_at=_parse_dt(doc.get("last_calculated_at")),
        calculation_status=CalculationStatus(
            doc.get("calculation_status") or CalculationStatus.NOT_STARTED.value
        ),
        calculation_error=doc.get("calculation_error"),
        calculation_started_at=_parse_dt(doc.get("calculation_started_at")),
        calculation_completed_at=_parse_dt(doc.get("calculation_completed_at")),
        created_at=_parse_dt(doc.get("created_at")),
        version=int(doc.get("version") or 0),
    )
