"""Builds the engine's object graph from an EngineConfig.

Shared by the API dependencies, the worker and the connectivity check so
that every entry point resolves configuration the same way, once.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from src.adapters.cache import DynamoDbSegmentCache, InMemorySegmentCache
from src.adapters.messaging.sqs_queue_adapter import SQSQueueAdapter
from src.adapters.persistence import DynamoDbRouteRepository, InMemoryRouteRepository
from src.adapters.routing import OpenRouteServiceRoutingBackend, OsrmRoutingBackend
from src.app.config import EngineConfig
from src.app.ports.output import (
    IQueueService,
    IRouteRepository,
    IRoutingBackend,
    ISegmentCache,
)
from src.app.services.route_calculator import RouteCalculator
from src.app.services.route_editing_service import RouteEditingService
from src.app.services.route_jobs_service import RouteJobsService


def build_routing_backend(config: EngineConfig) -> IRoutingBackend:
    if config.uses_external_backend:
        return OpenRouteServiceRoutingBackend(
            base_url=config.external_base_url,
            api_key=config.external_api_key,
            timeout_s=config.request_timeout_s,
        )
    return OsrmRoutingBackend(
        base_url=config.local_base_url, timeout_s=config.request_timeout_s
    )


def build_segment_cache(config: EngineConfig) -> ISegmentCache | None:
    if config.segment_cache == "none":
        return None
    if config.segment_cache == "dynamodb":
        return DynamoDbSegmentCache()
    return InMemorySegmentCache(max_entries=config.cache_max_entries)


def build_route_repository(config: EngineConfig) -> IRouteRepository:
    if config.route_store == "dynamodb":
        return DynamoDbRouteRepository()
    return InMemoryRouteRepository()


def build_queue_service() -> IQueueService | None:
    if os.getenv("ROUTE_CALC_QUEUE_URL"):
        return SQSQueueAdapter()
    return None


@dataclass(slots=True)
class Engine:
    config: EngineConfig
    backend: IRoutingBackend
    repository: IRouteRepository
    calculator: RouteCalculator
    editing: RouteEditingService
    jobs: RouteJobsService | None = None


def build_engine(config: EngineConfig | None = None) -> Engine:
    config = config or EngineConfig.from_env()

    backend = build_routing_backend(config)
    repository = build_route_repository(config)
    calculator = RouteCalculator(
        backend=backend,
        repository=repository,
        config=config,
        segment_cache=build_segment_cache(config),
    )

    jobs: RouteJobsService | None = None
    queue_service = build_queue_service()
    if queue_service is not None:
        jobs = RouteJobsService(
            queue_service=queue_service,
            repository=repository,
            calculator=calculator,
            max_attempts=config.max_attempts,
            retry_delay_s=config.retry_delay_s,
        )
    if config.async_calculation and jobs is None:
        raise RuntimeError(
            "ROUTE_CALC_ASYNC is set but ROUTE_CALC_QUEUE_URL is missing"
        )

    editing = RouteEditingService(
        repository=repository,
        calculator=calculator,
        jobs=jobs if config.async_calculation else None,
        default_profile=config.default_profile,
    )
    return Engine(
        config=config,
        backend=backend,
        repository=repository,
        calculator=calculator,
        editing=editing,
        jobs=jobs,
    )
