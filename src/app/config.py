from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum

from src.domain.exceptions import ConfigurationError

DEFAULT_OSRM_BASE_URL = "http://localhost:5000"
DEFAULT_ORS_BASE_URL = "https://api.openrouteservice.org/v2/directions"


def env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_str(name: str) -> str | None:
    raw = os.getenv(name)
    if raw is None:
        return None
    return raw.strip() or None


def _env_number(name: str, default: float) -> float:
    raw = _env_str(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


class BackendKind(str, Enum):
    LOCAL = "local"
    EXTERNAL = "external"


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """Everything the calculation engine needs, resolved once at startup.

    Env vars:
      - ROUTING_USE_EXTERNAL_API: 1|true selects the external backend
      - OSRM_BASE_URL: local backend base URL
      - ORS_BASE_URL, ORS_API_KEY: external backend URL and credential
      - ROUTING_REQUEST_TIMEOUT_S: per-request timeout (default 30)
      - SEGMENT_CACHE_TTL_HOURS: cache entry/segment TTL (default 24)
      - ROUTING_DEFAULT_PROFILE: travel profile for new routes (default driving-car)
      - SEGMENT_CACHE: memory|dynamodb|none (default memory)
      - ROUTE_STORE: memory|dynamodb (default memory)
      - ROUTE_CALC_ASYNC: dispatch calculations through the queue
      - ROUTE_CALC_MAX_ATTEMPTS: job attempts before `failed` (default 2)
      - ROUTE_CALC_RETRY_DELAY_S: delay before a retried attempt (default 5)
      - ROUTE_CALC_GRACE_S: slack before a pending calculation is abandoned
        (default 60)
      - SEGMENT_CACHE_MAX_ENTRIES: in-memory cache bound (default 10000)
    """

    backend: BackendKind = BackendKind.LOCAL
    local_base_url: str = DEFAULT_OSRM_BASE_URL
    external_base_url: str = DEFAULT_ORS_BASE_URL
    external_api_key: str | None = None
    request_timeout_s: float = 30.0
    cache_ttl_hours: float = 24.0
    default_profile: str = "driving-car"
    segment_cache: str = "memory"
    route_store: str = "memory"
    async_calculation: bool = False
    max_attempts: int = 2
    retry_delay_s: int = 5
    calculation_grace_s: float = 60.0
    cache_max_entries: int = 10_000

    def __post_init__(self) -> None:
        if self.request_timeout_s <= 0:
            raise ConfigurationError("Request timeout must be positive")
        if self.cache_ttl_hours <= 0:
            raise ConfigurationError("Cache TTL must be positive")
        if self.segment_cache not in {"memory", "dynamodb", "none"}:
            raise ConfigurationError(
                f"Unsupported SEGMENT_CACHE: {self.segment_cache}"
            )
        if self.route_store not in {"memory", "dynamodb"}:
            raise ConfigurationError(f"Unsupported ROUTE_STORE: {self.route_store}")
        if self.max_attempts < 1:
            raise ConfigurationError("ROUTE_CALC_MAX_ATTEMPTS must be at least 1")
        if self.retry_delay_s < 0 or self.calculation_grace_s < 0:
            raise ConfigurationError("Retry delay and grace must not be negative")
        if self.cache_max_entries < 1:
            raise ConfigurationError("SEGMENT_CACHE_MAX_ENTRIES must be at least 1")

    @property
    def cache_ttl_s(self) -> float:
        return self.cache_ttl_hours * 3600.0

    def abandon_after_s(self, pair_count: int) -> float:
        """How long a route may stay `calculating` before it counts as failed.

        Every attempt may spend the full request timeout on each pair and
        waits `retry_delay_s` before the next one.
        """

        per_attempt = self.request_timeout_s * max(1, pair_count) + self.retry_delay_s
        return self.max_attempts * per_attempt + self.calculation_grace_s

    @property
    def uses_external_backend(self) -> bool:
        return self.backend is BackendKind.EXTERNAL

    @staticmethod
    def from_env() -> "EngineConfig":
        backend = (
            BackendKind.EXTERNAL
            if env_bool("ROUTING_USE_EXTERNAL_API", False)
            else BackendKind.LOCAL
        )
        return EngineConfig(
            backend=backend,
            local_base_url=_env_str("OSRM_BASE_URL") or DEFAULT_OSRM_BASE_URL,
            external_base_url=_env_str("ORS_BASE_URL") or DEFAULT_ORS_BASE_URL,
            external_api_key=_env_str("ORS_API_KEY"),
            request_timeout_s=_env_number("ROUTING_REQUEST_TIMEOUT_S", 30.0),
            cache_ttl_hours=_env_number("SEGMENT_CACHE_TTL_HOURS", 24.0),
            default_profile=_env_str("ROUTING_DEFAULT_PROFILE") or "driving-car",
            segment_cache=(_env_str("SEGMENT_CACHE") or "memory").lower(),
            route_store=(_env_str("ROUTE_STORE") or "memory").lower(),
            async_calculation=env_bool("ROUTE_CALC_ASYNC", False),
            max_attempts=int(_env_number("ROUTE_CALC_MAX_ATTEMPTS", 2)),
            retry_delay_s=int(_env_number("ROUTE_CALC_RETRY_DELAY_S", 5)),
            calculation_grace_s=_env_number("ROUTE_CALC_GRACE_S", 60.0),
            cache_max_entries=int(_env_number("SEGMENT_CACHE_MAX_ENTRIES", 10_000)),
        )
