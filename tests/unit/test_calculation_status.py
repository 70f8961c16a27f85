from __future__ import annotations

from datetime import timedelta

import pytest
from fakes import T0, make_route

from src.app.config import BackendKind
from src.app.services.calculation_status_tracker import (
    CalculationStatusTracker,
    estimate_calculation_time,
)
from src.domain.models import CalculationStatus


@pytest.mark.unit
@pytest.mark.parametrize(
    ("waypoints", "backend", "expected"),
    [
        (2, BackendKind.LOCAL, 2),
        (10, BackendKind.LOCAL, 9),
        (2, BackendKind.EXTERNAL, 5),
        (10, BackendKind.EXTERNAL, 18),
        (0, BackendKind.LOCAL, 2),
    ],
)
def test_estimate_calculation_time(
    waypoints: int, backend: BackendKind, expected: int
) -> None:
    assert estimate_calculation_time(waypoints, backend) == expected


@pytest.mark.unit
def test_progress_while_calculating_is_elapsed_over_estimate() -> None:
    route = make_route([(0.0, 0.0)] * 6)
    route.calculation_status = CalculationStatus.CALCULATING
    route.calculation_started_at = T0

    view = CalculationStatusTracker(BackendKind.EXTERNAL).status(
        route, now=T0 + timedelta(seconds=4)
    )

    assert view.estimated_total_seconds == 10
    assert view.elapsed_seconds == 4.0
    assert view.progress_percentage == 40.0
    assert view.total_segments == 5
    assert view.calculated_segments == 0


@pytest.mark.unit
def test_progress_is_capped_below_completion_while_calculating() -> None:
    route = make_route([(0.0, 0.0), (0.0, 1.0)])
    route.calculation_status = CalculationStatus.CALCULATING
    route.calculation_started_at = T0

    view = CalculationStatusTracker(BackendKind.LOCAL).status(
        route, now=T0 + timedelta(minutes=5)
    )

    assert view.progress_percentage == 95.0


@pytest.mark.unit
def test_completed_view_reports_full_progress_and_carries_the_route() -> None:
    route = make_route([(0.0, 0.0), (0.0, 1.0)])
    route.calculation_status = CalculationStatus.COMPLETED
    route.calculation_started_at = T0
    route.calculation_completed_at = T0 + timedelta(seconds=2)

    payload = CalculationStatusTracker(BackendKind.LOCAL).status(route).as_dict()

    assert payload["status"] == "completed"
    assert payload["progress_percentage"] == 100.0
    assert payload["completed_at"] == "2026-01-08T08:00:02+00:00"
    assert [w["id"] for w in payload["waypoints"]] == ["w0", "w1"]
    assert payload["segments"] == []


@pytest.mark.unit
@pytest.mark.parametrize(
    "status",
    [CalculationStatus.NOT_STARTED, CalculationStatus.ERROR, CalculationStatus.FAILED],
)
def test_idle_views_have_no_progress(status: CalculationStatus) -> None:
    route = make_route([(0.0, 0.0), (0.0, 1.0)])
    route.calculation_status = status
    if status is not CalculationStatus.NOT_STARTED:
        route.calculation_error = "boom"

    view = CalculationStatusTracker(BackendKind.LOCAL).status(route, now=T0)
    payload = view.as_dict()

    assert payload["progress_percentage"] is None
    assert payload["elapsed_seconds"] is None
    assert "waypoints" not in payload
    assert payload["error"] == route.calculation_error
