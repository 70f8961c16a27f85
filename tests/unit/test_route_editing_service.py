from __future__ import annotations

import pytest
from fakes import FakeClock, FakeQueueService, FakeRoutingBackend

from src.adapters.persistence import InMemoryRouteRepository
from src.app.services.route_calculator import RouteCalculator
from src.app.services.route_editing_service import RouteEditingService, WaypointDraft
from src.app.services.route_jobs_service import RouteJobsService
from src.domain.exceptions import (
    CalculationInProgress,
    InsufficientWaypoints,
    RouteNotFound,
    WaypointNotFound,
)
from src.domain.models import CalculationStatus, GeoPoint, Route

A = GeoPoint(lat=40.4168, lon=-3.7038)
B = GeoPoint(lat=40.4200, lon=-3.7000)
C = GeoPoint(lat=40.4250, lon=-3.6950)
X = GeoPoint(lat=40.4300, lon=-3.6900)


@pytest.fixture
def service(
    repository: InMemoryRouteRepository, calculator: RouteCalculator
) -> RouteEditingService:
    return RouteEditingService(repository=repository, calculator=calculator)


def _create(service: RouteEditingService, *points: GeoPoint) -> Route:
    return service.create_route(
        name="Madrid loop", waypoints=[WaypointDraft(location=p) for p in points]
    )


def _pairs(route: Route) -> list[tuple[GeoPoint, GeoPoint]]:
    by_id = {w.id: w.location for w in route.waypoints}
    return [
        (by_id[s.start_waypoint_id], by_id[s.end_waypoint_id]) for s in route.segments
    ]


@pytest.mark.unit
def test_create_route_calculates_when_it_has_two_waypoints(
    service: RouteEditingService, backend: FakeRoutingBackend
) -> None:
    route = _create(service, A, B, C)

    assert route.calculation_status is CalculationStatus.COMPLETED
    assert [w.name for w in route.waypoints] == [
        "Waypoint 1",
        "Waypoint 2",
        "Waypoint 3",
    ]
    assert _pairs(route) == [(A, B), (B, C)]
    assert route.profile == "driving-car"
    assert len(backend.calls) == 2


@pytest.mark.unit
def test_create_route_with_one_waypoint_stays_not_started(
    service: RouteEditingService, backend: FakeRoutingBackend
) -> None:
    route = _create(service, A)

    assert route.calculation_status is CalculationStatus.NOT_STARTED
    assert backend.calls == []


@pytest.mark.unit
def test_appending_a_waypoint_computes_only_the_new_pair(
    service: RouteEditingService, backend: FakeRoutingBackend
) -> None:
    route = _create(service, A, B)

    route = service.insert_waypoint(route.id, WaypointDraft(location=C, name="End"))

    assert _pairs(route) == [(A, B), (B, C)]
    assert route.waypoints[-1].name == "End"
    assert route.total_distance_m == 2000.0
    assert len(backend.calls) == 2


@pytest.mark.unit
def test_inserting_at_the_head_resequences_existing_segments(
    service: RouteEditingService, backend: FakeRoutingBackend
) -> None:
    route = _create(service, A, B)

    route = service.insert_waypoint(
        route.id, WaypointDraft(location=X), after_sequence=-1
    )

    assert [w.location for w in route.waypoints] == [X, A, B]
    assert [w.sequence for w in route.waypoints] == [0, 1, 2]
    assert _pairs(route) == [(X, A), (A, B)]
    assert [s.sequence for s in route.segments] == [0, 1]
    assert len(backend.calls) == 2


@pytest.mark.unit
def test_inserting_in_the_middle_replaces_the_split_segment(
    service: RouteEditingService, backend: FakeRoutingBackend
) -> None:
    route = _create(service, A, B)

    route = service.insert_waypoint(
        route.id, WaypointDraft(location=X), after_sequence=0
    )

    assert _pairs(route) == [(A, X), (X, B)]
    assert len(backend.calls) == 3


@pytest.mark.unit
def test_insert_after_an_unknown_sequence_is_rejected(
    service: RouteEditingService,
) -> None:
    route = _create(service, A, B)

    with pytest.raises(WaypointNotFound):
        service.insert_waypoint(route.id, WaypointDraft(location=X), after_sequence=2)


@pytest.mark.unit
def test_moving_a_waypoint_recomputes_the_segments_touching_it(
    service: RouteEditingService, backend: FakeRoutingBackend
) -> None:
    route = _create(service, A, B, C)
    middle = route.waypoints[1].id

    route = service.move_waypoint(route.id, middle, X)

    assert _pairs(route) == [(A, X), (X, C)]
    assert len(backend.calls) == 4

    # Moving it back resolves both pairs from the coordinate cache.
    route = service.move_waypoint(route.id, middle, B)

    assert _pairs(route) == [(A, B), (B, C)]
    assert len(backend.calls) == 4


@pytest.mark.unit
def test_deleting_a_waypoint_bridges_its_neighbours(
    service: RouteEditingService, backend: FakeRoutingBackend
) -> None:
    route = _create(service, A, B, C)

    route = service.delete_waypoint(route.id, route.waypoints[1].id)

    assert [w.location for w in route.waypoints] == [A, C]
    assert _pairs(route) == [(A, C)]
    assert route.total_distance_m == 1000.0
    assert route.calculation_status is CalculationStatus.COMPLETED
    assert len(backend.calls) == 3


@pytest.mark.unit
def test_a_route_keeps_at_least_two_waypoints(service: RouteEditingService) -> None:
    route = _create(service, A, B)

    with pytest.raises(InsufficientWaypoints):
        service.delete_waypoint(route.id, route.waypoints[0].id)
    assert len(service.get_route(route.id).waypoints) == 2


@pytest.mark.unit
def test_unknown_route_and_waypoint_are_not_found(
    service: RouteEditingService,
) -> None:
    route = _create(service, A, B, C)

    with pytest.raises(WaypointNotFound):
        service.delete_waypoint(route.id, "missing")
    with pytest.raises(WaypointNotFound):
        service.move_waypoint(route.id, "missing", X)
    with pytest.raises(RouteNotFound):
        service.get_route("missing")
    with pytest.raises(RouteNotFound):
        service.delete_route("missing")


@pytest.mark.unit
def test_edits_are_rejected_while_calculating(
    service: RouteEditingService,
    calculator: RouteCalculator,
    repository: InMemoryRouteRepository,
) -> None:
    route = _create(service, A, B)
    calculator.mark_calculating(repository.get(route.id))

    with pytest.raises(CalculationInProgress):
        service.insert_waypoint(route.id, WaypointDraft(location=C))
    with pytest.raises(CalculationInProgress):
        service.recalculate(route.id)


@pytest.mark.unit
def test_recalculate_forces_every_pair_through_the_cache(
    service: RouteEditingService, backend: FakeRoutingBackend
) -> None:
    route = _create(service, A, B, C)

    route = service.recalculate(route.id)

    assert route.calculation_status is CalculationStatus.COMPLETED
    assert route.version == 5
    assert len(backend.calls) == 2


@pytest.mark.unit
def test_status_view_of_a_completed_route(service: RouteEditingService) -> None:
    route = _create(service, A, B)

    view = service.get_status(route.id)

    assert view.status is CalculationStatus.COMPLETED
    assert view.progress_percentage == 100.0
    assert view.total_segments == view.calculated_segments == 1


@pytest.mark.unit
def test_delete_route(service: RouteEditingService) -> None:
    route = _create(service, A, B)

    service.delete_route(route.id)

    with pytest.raises(RouteNotFound):
        service.get_route(route.id)


@pytest.mark.unit
def test_async_edits_are_dispatched_through_the_jobs_service(
    repository: InMemoryRouteRepository,
    calculator: RouteCalculator,
    backend: FakeRoutingBackend,
) -> None:
    queue = FakeQueueService()
    jobs = RouteJobsService(
        queue_service=queue, repository=repository, calculator=calculator
    )
    service = RouteEditingService(
        repository=repository, calculator=calculator, jobs=jobs
    )

    route = _create(service, A, B)

    assert route.calculation_status is CalculationStatus.CALCULATING
    assert backend.calls == []

    for message in queue.consume_request(max_messages=10):
        jobs.run(message)

    stored = service.get_route(route.id)
    assert stored.calculation_status is CalculationStatus.COMPLETED
    assert len(backend.calls) == 1


@pytest.mark.unit
def test_a_crashed_calculation_stays_retryable(
    service: RouteEditingService,
    backend: FakeRoutingBackend,
    repository: InMemoryRouteRepository,
) -> None:
    backend.fail_always = True
    backend.error = AttributeError("'NoneType' object has no attribute 'get'")

    with pytest.raises(AttributeError):
        _create(service, A, B)

    (route_id,) = repository._routes
    assert service.get_status(route_id).status is CalculationStatus.ERROR

    backend.fail_always = False
    route = service.recalculate(route_id)

    assert route.calculation_status is CalculationStatus.COMPLETED
    assert route.calculation_error is None


@pytest.mark.unit
def test_an_abandoned_calculation_no_longer_blocks_edits(
    service: RouteEditingService,
    calculator: RouteCalculator,
    repository: InMemoryRouteRepository,
    clock: FakeClock,
) -> None:
    route = _create(service, A, B)
    calculator.mark_calculating(repository.get(route.id))
    clock.advance(minutes=10)

    view = service.get_status(route.id)
    assert view.status is CalculationStatus.ERROR
    assert view.error.startswith("CalculationTimeout: ")

    route = service.insert_waypoint(route.id, WaypointDraft(location=C))

    assert route.calculation_status is CalculationStatus.COMPLETED
    assert _pairs(route) == [(A, B), (B, C)]
