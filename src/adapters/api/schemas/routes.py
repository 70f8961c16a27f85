from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class GeoPointSchema(BaseModel):
    lat: float = Field(..., ge=-90.0, le=90.0)
    lon: float = Field(..., ge=-180.0, le=180.0)


class WaypointInputSchema(GeoPointSchema):
    name: str | None = Field(default=None, max_length=255)
    description: str | None = None


class CreateRouteRequestSchema(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    profile: str | None = None
    owner_id: str | None = None
    waypoints: list[WaypointInputSchema] = []


class InsertWaypointRequestSchema(WaypointInputSchema):
    after_sequence: int | None = Field(default=None, ge=-1)


class WaypointSchema(BaseModel):
    id: str
    sequence: int
    name: str
    description: str | None = None
    location: GeoPointSchema


class SegmentSchema(BaseModel):
    sequence: int
    start_waypoint_id: str
    end_waypoint_id: str
    distance_m: float
    duration_s: float
    geometry: str | None = None
    profile: str
    expires_at: datetime


class RouteSchema(BaseModel):
    id: str
    name: str
    profile: str
    owner_id: str | None = None
    waypoints: list[WaypointSchema] = []
    segments: list[SegmentSchema] = []

    total_distance_m: float = 0.0
    total_duration_s: float = 0.0
    last_calculated_at: datetime | None = None

    calculation_status: str
    calculation_error: str | None = None
    calculation_started_at: datetime | None = None
    calculation_completed_at: datetime | None = None


class CalculationStatusSchema(BaseModel):
    route_id: str
    status: str
    started_at: datetime | None = None
    completed_at: datetime | None = None
    error: str | None = None
    backend: str
    total_segments: int
    calculated_segments: int
    elapsed_seconds: float | None = None
    estimated_total_seconds: int | None = None
    progress_percentage: float | None = None
    waypoints: list[dict[str, Any]] | None = None
    segments: list[dict[str, Any]] | None = None


class ConnectivitySchema(BaseModel):
    success: bool
    backend: str
    latency_ms: float
    error: str | None = None
    distance_m: float | None = None
    duration_s: float | None = None
