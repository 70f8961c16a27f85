from __future__ import annotations

import json
from dataclasses import dataclass

from src.domain.exceptions import (
    BackendBadResponse,
    BackendUnauthorized,
    ConfigurationError,
)
from src.domain.models import GeoPoint, PathResult

from .http_backend import HttpRoutingBackend, _provider_message


@dataclass(slots=True)
class OpenRouteServiceRoutingBackend(HttpRoutingBackend):
    """Metered OpenRouteService directions API (`POST {base}/{profile}`).

    The API key is mandatory; constructing the backend without one raises
    ConfigurationError instead of failing on the first request.
    """

    api_key: str | None = None
    name: str = "openrouteservice"

    def __post_init__(self) -> None:
        if not (self.api_key or "").strip():
            raise ConfigurationError(
                "External routing backend selected but ORS_API_KEY is not set"
            )
        HttpRoutingBackend.__post_init__(self)

    def _default_headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": str(self.api_key).strip(),
        }

    def compute_path(self, start: GeoPoint, end: GeoPoint, profile: str) -> PathResult:
        url = f"{self.base_url}/{profile}"
        body = {
            "coordinates": [list(start.as_lon_lat()), list(end.as_lon_lat())],
            "instructions": True,
        }

        resp = self._send("POST", url, json=body)
        if resp.status_code in (401, 403):
            raise BackendUnauthorized(
                f"OpenRouteService rejected the API key: "
                f"{_provider_message(resp) or resp.status_code}",
                backend=self.name,
            )
        if resp.status_code >= 400:
            detail = _provider_message(resp) or f"HTTP {resp.status_code}"
            raise BackendBadResponse(
                f"OpenRouteService {resp.status_code}: {detail}", backend=self.name
            )

        data = self._json(resp)
        routes = data.get("routes") or []
        if not routes or not isinstance(routes[0], dict):
            raise BackendBadResponse(
                "OpenRouteService returned no routes", backend=self.name
            )

        route = routes[0]
        # ORS omits zero-valued summary fields (e.g. identical endpoints).
        summary = route.get("summary") or {}
        if not isinstance(summary, dict):
            raise BackendBadResponse(
                "OpenRouteService returned a malformed summary", backend=self.name
            )
        geometry = route.get("geometry")
        steps = self._steps(route.get("segments"), "segments")
        return PathResult(
            distance_m=self._non_negative(summary.get("distance", 0.0), "distance"),
            duration_s=self._non_negative(summary.get("duration", 0.0), "duration"),
            geometry=(
                json.dumps(geometry, separators=(",", ":"))
                if isinstance(geometry, (dict, list))
                else geometry
            ),
            raw_instructions=steps,
        )
