from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from src.adapters.api.dependencies import (
    get_route_editing_service,
    get_routing_backend,
)
from src.adapters.api.schemas.routes import (
    CalculationStatusSchema,
    ConnectivitySchema,
    CreateRouteRequestSchema,
    GeoPointSchema,
    InsertWaypointRequestSchema,
    RouteSchema,
    SegmentSchema,
    WaypointSchema,
)
from src.app.ports.output import IRoutingBackend
from src.app.services.route_editing_service import RouteEditingService, WaypointDraft
from src.domain.models import GeoPoint, Route

router = APIRouter(tags=["routes"])


def _route_to_schema(route: Route) -> RouteSchema:
    return RouteSchema(
        id=route.id,
        name=route.name,
        profile=route.profile,
        owner_id=route.owner_id,
        waypoints=[
            WaypointSchema(
                id=w.id,
                sequence=w.sequence,
                name=w.name,
                description=w.description,
                location=GeoPointSchema(lat=w.location.lat, lon=w.location.lon),
            )
            for w in route.waypoints
        ],
        segments=[
            SegmentSchema(
                sequence=s.sequence,
                start_waypoint_id=s.start_waypoint_id,
                end_waypoint_id=s.end_waypoint_id,
                distance_m=s.distance_m,
                duration_s=s.duration_s,
                geometry=s.geometry,
                profile=s.profile,
                expires_at=s.expires_at,
            )
            for s in route.segments
        ],
        total_distance_m=route.total_distance_m,
        total_duration_s=route.total_duration_s,
        last_calculated_at=route.last_calculated_at,
        calculation_status=route.calculation_status.value,
        calculation_error=route.calculation_error,
        calculation_started_at=route.calculation_started_at,
        calculation_completed_at=route.calculation_completed_at,
    )


@router.post("/routes", response_model=RouteSchema, status_code=201)
def create_route(
    req: CreateRouteRequestSchema,
    service: RouteEditingService = Depends(get_route_editing_service),
) -> RouteSchema:
    route = service.create_route(
        name=req.name,
        profile=req.profile,
        owner_id=req.owner_id,
        waypoints=[
            WaypointDraft(
                location=GeoPoint(lat=w.lat, lon=w.lon),
                name=w.name,
                description=w.description,
            )
            for w in req.waypoints
        ],
    )
    return _route_to_schema(route)


@router.get("/routes/{route_id}", response_model=RouteSchema)
def get_route(
    route_id: str,
    service: RouteEditingService = Depends(get_route_editing_service),
) -> RouteSchema:
    return _route_to_schema(service.get_route(route_id))


@router.delete("/routes/{route_id}", status_code=204)
def delete_route(
    route_id: str,
    service: RouteEditingService = Depends(get_route_editing_service),
) -> Response:
    service.delete_route(route_id)
    return Response(status_code=204)


@router.post("/routes/{route_id}/waypoints", response_model=RouteSchema)
def insert_waypoint(
    route_id: str,
    req: InsertWaypointRequestSchema,
    service: RouteEditingService = Depends(get_route_editing_service),
) -> RouteSchema:
    route = service.insert_waypoint(
        route_id,
        WaypointDraft(
            location=GeoPoint(lat=req.lat, lon=req.lon),
            name=req.name,
            description=req.description,
        ),
        after_sequence=req.after_sequence,
    )
    return _route_to_schema(route)


@router.patch("/routes/{route_id}/waypoints/{waypoint_id}", response_model=RouteSchema)
def move_waypoint(
    route_id: str,
    waypoint_id: str,
    req: GeoPointSchema,
    service: RouteEditingService = Depends(get_route_editing_service),
) -> RouteSchema:
    route = service.move_waypoint(
        route_id, waypoint_id, GeoPoint(lat=req.lat, lon=req.lon)
    )
    return _route_to_schema(route)


@router.delete("/routes/{route_id}/waypoints/{waypoint_id}", response_model=RouteSchema)
def delete_waypoint(
    route_id: str,
    waypoint_id: str,
    service: RouteEditingService = Depends(get_route_editing_service),
) -> RouteSchema:
    return _route_to_schema(service.delete_waypoint(route_id, waypoint_id))


@router.post("/routes/{route_id}/recalculate", response_model=RouteSchema)
def recalculate_route(
    route_id: str,
    service: RouteEditingService = Depends(get_route_editing_service),
) -> RouteSchema:
    return _route_to_schema(service.recalculate(route_id, force_recalculate=True))


@router.get("/routes/{route_id}/status", response_model=CalculationStatusSchema)
def get_route_status(
    route_id: str,
    service: RouteEditingService = Depends(get_route_editing_service),
) -> CalculationStatusSchema:
    return CalculationStatusSchema(**service.get_status(route_id).as_dict())


@router.get("/routing/connectivity", response_model=ConnectivitySchema)
def routing_connectivity(
    backend: IRoutingBackend = Depends(get_routing_backend),
) -> ConnectivitySchema:
    report = backend.test_connectivity()
    return ConnectivitySchema(
        success=report.success,
        backend=report.backend,
        latency_ms=report.latency_ms,
        error=report.error,
        distance_m=report.distance_m,
        duration_s=report.duration_s,
    )
