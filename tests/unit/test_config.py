from __future__ import annotations

import pytest

from src.adapters.bootstrap import build_engine, build_routing_backend
from src.adapters.routing import OpenRouteServiceRoutingBackend, OsrmRoutingBackend
from src.app.config import BackendKind, EngineConfig
from src.domain.exceptions import ConfigurationError

_VARS = (
    "ROUTING_USE_EXTERNAL_API",
    "OSRM_BASE_URL",
    "ORS_BASE_URL",
    "ORS_API_KEY",
    "ROUTING_REQUEST_TIMEOUT_S",
    "SEGMENT_CACHE_TTL_HOURS",
    "ROUTING_DEFAULT_PROFILE",
    "SEGMENT_CACHE",
    "ROUTE_STORE",
    "ROUTE_CALC_ASYNC",
    "ROUTE_CALC_MAX_ATTEMPTS",
    "ROUTE_CALC_QUEUE_URL",
    "ROUTE_CALC_RETRY_DELAY_S",
    "ROUTE_CALC_GRACE_S",
    "SEGMENT_CACHE_MAX_ENTRIES",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.mark.unit
def test_defaults_select_the_local_backend() -> None:
    config = EngineConfig.from_env()

    assert config.backend is BackendKind.LOCAL
    assert config.local_base_url == "http://localhost:5000"
    assert config.request_timeout_s == 30.0
    assert config.cache_ttl_s == 24 * 3600
    assert config.default_profile == "driving-car"
    assert config.max_attempts == 2
    assert isinstance(build_routing_backend(config), OsrmRoutingBackend)


@pytest.mark.unit
def test_external_backend_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ROUTING_USE_EXTERNAL_API", "true")
    monkeypatch.setenv("ORS_API_KEY", "secret")
    monkeypatch.setenv("ROUTING_REQUEST_TIMEOUT_S", "5")
    monkeypatch.setenv("SEGMENT_CACHE_TTL_HOURS", "1.5")

    config = EngineConfig.from_env()
    backend = build_routing_backend(config)

    assert config.uses_external_backend
    assert config.cache_ttl_s == 5400.0
    assert isinstance(backend, OpenRouteServiceRoutingBackend)
    assert backend.timeout_s == 5.0


@pytest.mark.unit
def test_external_backend_without_key_is_a_configuration_error(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("ROUTING_USE_EXTERNAL_API", "1")

    with pytest.raises(ConfigurationError, match="ORS_API_KEY"):
        build_routing_backend(EngineConfig.from_env())


@pytest.mark.unit
@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("ROUTING_REQUEST_TIMEOUT_S", "soon"),
        ("ROUTING_REQUEST_TIMEOUT_S", "0"),
        ("SEGMENT_CACHE_TTL_HOURS", "-1"),
        ("SEGMENT_CACHE", "redis"),
        ("ROUTE_STORE", "postgres"),
        ("ROUTE_CALC_MAX_ATTEMPTS", "0"),
        ("SEGMENT_CACHE_MAX_ENTRIES", "0"),
        ("ROUTE_CALC_GRACE_S", "-1"),
    ],
)
def test_invalid_values_are_rejected(
    monkeypatch: pytest.MonkeyPatch, name: str, value: str
) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigurationError):
        EngineConfig.from_env()


@pytest.mark.unit
def test_async_calculation_requires_a_queue(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ROUTE_CALC_ASYNC", "true")
    with pytest.raises(RuntimeError, match="ROUTE_CALC_QUEUE_URL"):
        build_engine()


@pytest.mark.unit
def test_build_engine_wires_synchronous_editing_by_default() -> None:
    engine = build_engine()

    assert engine.jobs is None
    assert engine.editing.jobs is None
    assert engine.calculator.segment_cache is not None
    assert engine.editing.repository is engine.repository


@pytest.mark.unit
def test_retry_and_cache_bounds_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ROUTE_CALC_MAX_ATTEMPTS", "3")
    monkeypatch.setenv("ROUTE_CALC_RETRY_DELAY_S", "10")
    monkeypatch.setenv("ROUTE_CALC_GRACE_S", "0")
    monkeypatch.setenv("ROUTING_REQUEST_TIMEOUT_S", "5")
    monkeypatch.setenv("SEGMENT_CACHE_MAX_ENTRIES", "50")

    config = EngineConfig.from_env()
    engine = build_engine(config)

    # Three attempts over four pairs: 3 x (5s x 4 + 10s).
    assert config.abandon_after_s(4) == 90.0
    assert engine.calculator.segment_cache.max_entries == 50
