from __future__ import annotations

import pytest
from fakes import FakeClock, FakeRoutingBackend

from src.adapters.cache import InMemorySegmentCache
from src.adapters.persistence import InMemoryRouteRepository
from src.app.config import EngineConfig
from src.app.services.route_calculator import RouteCalculator


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def backend() -> FakeRoutingBackend:
    return FakeRoutingBackend()


@pytest.fixture
def repository() -> InMemoryRouteRepository:
    return InMemoryRouteRepository()


@pytest.fixture
def segment_cache(clock: FakeClock) -> InMemorySegmentCache:
    return InMemorySegmentCache(clock=clock)


@pytest.fixture
def calculator(
    backend: FakeRoutingBackend,
    repository: InMemoryRouteRepository,
    segment_cache: InMemorySegmentCache,
    clock: FakeClock,
) -> RouteCalculator:
    return RouteCalculator(
        backend=backend,
        repository=repository,
        config=EngineConfig(),
        segment_cache=segment_cache,
        clock=clock,
    )
