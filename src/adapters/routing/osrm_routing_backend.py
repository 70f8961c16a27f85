from __future__ import annotations

import json
from dataclasses import dataclass

from src.domain.exceptions import BackendBadResponse
from src.domain.models import GeoPoint, PathResult

from .http_backend import HttpRoutingBackend, _provider_message


def osrm_profile(profile: str) -> str:
    """Map an OpenRouteService-style profile to the OSRM profile family."""

    p = (profile or "").strip().lower()
    if p.startswith("cycling"):
        return "cycling"
    if p.startswith("foot") or p == "wheelchair":
        return "foot"
    return "driving"


@dataclass(slots=True)
class OsrmRoutingBackend(HttpRoutingBackend):
    """Self-hosted OSRM backend (`/route/v1`), low latency, no credential."""

    name: str = "osrm"

    def compute_path(self, start: GeoPoint, end: GeoPoint, profile: str) -> PathResult:
        coords = f"{start.lon},{start.lat};{end.lon},{end.lat}"
        url = f"{self.base_url}/route/v1/{osrm_profile(profile)}/{coords}"

        resp = self._send(
            "GET",
            url,
            params={"overview": "full", "geometries": "geojson", "steps": "true"},
        )
        if resp.status_code >= 400:
            detail = _provider_message(resp) or f"HTTP {resp.status_code}"
            raise BackendBadResponse(
                f"OSRM {resp.status_code}: {detail}", backend=self.name
            )

        data = self._json(resp)
        code = data.get("code")
        if code != "Ok":
            raise BackendBadResponse(
                f"OSRM {code or 'error'}: {data.get('message', 'no route')}",
                backend=self.name,
            )

        routes = data.get("routes") or []
        if not routes or not isinstance(routes[0], dict):
            raise BackendBadResponse("OSRM returned no routes", backend=self.name)

        route = routes[0]
        if "distance" not in route or "duration" not in route:
            raise BackendBadResponse(
                "OSRM route is missing distance/duration", backend=self.name
            )

        geometry = route.get("geometry")
        steps = self._steps(route.get("legs"), "legs")
        return PathResult(
            distance_m=self._non_negative(route["distance"], "distance"),
            duration_s=self._non_negative(route["duration"], "duration"),
            geometry=(
                json.dumps(geometry, separators=(",", ":"))
                if isinstance(geometry, (dict, list))
                else geometry
            ),
            raw_instructions=steps,
        )
