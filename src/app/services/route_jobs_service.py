from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from src.app.ports.output import IQueueService, IRouteRepository
from src.domain.exceptions import (
    BackendError,
    InsufficientWaypoints,
    RouteNotFound,
)
from src.domain.models import CalculationStatus, Route

from .route_calculator import RouteCalculator

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RouteJobsService:
    """Background execution of full route calculations over a queue.

    - `submit` enters `calculating` before publishing, so a second trigger
      for the same route is rejected while the first one is pending.
    - `run` only calculates routes that are still `calculating`, which makes
      duplicate deliveries harmless.
    - A failed attempt is re-published until `max_attempts` is reached; the
      route then ends in `failed`.
    """

    queue_service: IQueueService
    repository: IRouteRepository
    calculator: RouteCalculator
    max_attempts: int = 2
    retry_delay_s: int = 5

    def submit(self, *, route_id: str, force_recalculate: bool = False) -> str:
        route = self._load(route_id)
        if len(route.waypoints) < 2:
            raise InsufficientWaypoints(
                f"Route {route_id} needs at least 2 waypoints, "
                f"has {len(route.waypoints)}"
            )

        self.calculator.mark_calculating(route)
        return self.queue_service.publish_request(
            {"route_id": route_id, "force_recalculate": force_recalculate, "attempt": 1}
        )

    def run(self, message: Mapping[str, Any]) -> CalculationStatus | None:
        route_id = str(message.get("route_id") or "")
        if not route_id:
            logger.warning("Ignoring queue message without route_id")
            return None

        attempt = int(message.get("attempt") or 1)
        force = bool(message.get("force_recalculate", False))

        route = self.repository.get(route_id)
        if route is None:
            logger.info(
                "Route vanished before calculation", extra={"route_id": route_id}
            )
            return None
        if route.calculation_status is not CalculationStatus.CALCULATING:
            logger.info(
                "Skipping calculation, route is not pending",
                extra={"route_id": route_id, "status": route.calculation_status.value},
            )
            return route.calculation_status

        try:
            return self.calculator.calculate_full(
                route, force_recalculate=force
            ).calculation_status
        except InsufficientWaypoints as exc:
            # User input error: never retried.
            return self.calculator.mark_error(
                self._load(route_id), f"{type(exc).__name__}: {exc}"
            ).calculation_status
        except Exception as exc:
            error = (
                exc.describe()
                if isinstance(exc, BackendError)
                else f"{type(exc).__name__}: {exc}"
            )
            return self._retry_or_fail(route_id, attempt, force, error)

    def _retry_or_fail(
        self, route_id: str, attempt: int, force: bool, error: str
    ) -> CalculationStatus | None:
        route = self.repository.get(route_id)
        if route is None:
            return None
        if route.calculation_status is CalculationStatus.COMPLETED:
            # A concurrent delivery finished it first.
            return route.calculation_status

        if attempt >= self.max_attempts:
            logger.error(
                "Route calculation failed permanently",
                extra={"route_id": route_id, "attempt": attempt, "error": error},
            )
            return self.calculator.mark_failed(route, error).calculation_status

        logger.warning(
            "Route calculation attempt failed, retrying",
            extra={"route_id": route_id, "attempt": attempt, "error": error},
        )
        if route.calculation_status is not CalculationStatus.CALCULATING:
            route = self.calculator.mark_calculating(route)
        self.queue_service.publish_request(
            {
                "route_id": route_id,
                "force_recalculate": force,
                "attempt": attempt + 1,
            },
            delay_s=self.retry_delay_s,
        )
        return route.calculation_status

    def _load(self, route_id: str) -> Route:
        route = self.repository.get(route_id)
        if route is None:
            raise RouteNotFound(f"Route {route_id} not found")
        return route
