from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from typing import Any

import httpx

from src.app.ports.output import ConnectivityReport, IRoutingBackend
from src.domain.exceptions import BackendBadResponse, BackendError, BackendUnreachable
from src.domain.models import GeoPoint

# Fixed round trip used for connectivity checks (São Paulo -> Rio de Janeiro).
CONNECTIVITY_START = GeoPoint(lat=-23.5505, lon=-46.6333)
CONNECTIVITY_END = GeoPoint(lat=-22.9068, lon=-43.1729)
CONNECTIVITY_PROFILE = "driving-car"


def _provider_message(resp: httpx.Response) -> str | None:
    """Best-effort extraction of an error message from a JSON error payload."""

    try:
        data = resp.json()
    except ValueError:
        data = None

    if isinstance(data, dict):
        err = data.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        if isinstance(err, str) and err:
            return err
        if data.get("message"):
            return str(data["message"])

    body = (resp.text or "").strip().replace("\n", " ")
    if len(body) > 240:
        body = body[:240] + "..."
    return body or None


@dataclass(slots=True)
class HttpRoutingBackend(IRoutingBackend):
    """Shared HTTP plumbing for routing backends.

    Subclasses build the request and parse the payload; timeouts and
    transport failures are classified here so both variants report the
    same error classes.
    """

    base_url: str
    timeout_s: float = 30.0
    transport: httpx.BaseTransport | None = None
    name: str = "http"

    _client: httpx.Client = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.base_url = self.base_url.rstrip("/")
        self._client = httpx.Client(
            timeout=httpx.Timeout(self.timeout_s),
            transport=self.transport,
            headers=self._default_headers(),
        )

    def _default_headers(self) -> dict[str, str]:
        return {"Accept": "application/json"}

    def close(self) -> None:
        self._client.close()

    def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise BackendUnreachable(
                f"{self.name} timed out after {self.timeout_s}s", backend=self.name
            ) from exc
        except httpx.TransportError as exc:
            raise BackendUnreachable(
                f"{self.name} unreachable: {exc}", backend=self.name
            ) from exc
        except httpx.RequestError as exc:
            # Decoding failures and redirect loops: the server answered badly.
            raise BackendBadResponse(
                f"{self.name} request failed: {type(exc).__name__}: {exc}",
                backend=self.name,
            ) from exc

    def _json(self, resp: httpx.Response) -> dict[str, Any]:
        try:
            data = resp.json()
        except ValueError as exc:
            raise BackendBadResponse(
                f"{self.name} returned malformed JSON", backend=self.name
            ) from exc
        if not isinstance(data, dict):
            raise BackendBadResponse(
                f"{self.name} returned an unexpected payload", backend=self.name
            )
        return data

    def _non_negative(self, value: Any, label: str) -> float:
        try:
            number = float(value)
        except (TypeError, ValueError) as exc:
            raise BackendBadResponse(
                f"{self.name} returned a non-numeric {label}: {value!r}",
                backend=self.name,
            ) from exc
        if not math.isfinite(number):
            raise BackendBadResponse(
                f"{self.name} returned a non-finite {label}: {number}",
                backend=self.name,
            )
        if number < 0:
            raise BackendBadResponse(
                f"{self.name} returned a negative {label}: {number}", backend=self.name
            )
        return number

    def test_connectivity(self) -> ConnectivityReport:
        started = time.perf_counter()
        try:
            result = self.compute_path(
                CONNECTIVITY_START, CONNECTIVITY_END, CONNECTIVITY_PROFILE
            )
        except BackendError as exc:
            return ConnectivityReport(
                success=False,
                backend=self.name,
                latency_ms=round((time.perf_counter() - started) * 1000, 2),
                error=exc.describe(),
            )
        return ConnectivityReport(
            success=True,
            backend=self.name,
            latency_ms=round((time.perf_counter() - started) * 1000, 2),
            distance_m=result.distance_m,
            duration_s=result.duration_s,
        )

    def _steps(self, parts: Any, label: str) -> tuple[dict[str, Any], ...]:
        """Flatten the per-leg instruction lists of a route payload."""

        if parts is None:
            return ()
        if not isinstance(parts, list):
            raise BackendBadResponse(
                f"{self.name} returned malformed {label}", backend=self.name
            )
        steps: list[dict[str, Any]] = []
        for part in parts:
            if not isinstance(part, dict):
                raise BackendBadResponse(
                    f"{self.name} returned a malformed {label} entry: {part!r}",
                    backend=self.name,
                )
            steps.extend(s for s in part.get("steps") or () if isinstance(s, dict))
        return tuple(steps)
