from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from src.domain.models import GeoPoint, PathResult


@dataclass(frozen=True, slots=True)
class ConnectivityReport:
    success: bool
    backend: str
    latency_ms: float
    error: str | None = None
    distance_m: float | None = None
    duration_s: float | None = None


class IRoutingBackend(ABC):
    """Port for pairwise path computation by an external routing provider."""

    name: str

    @abstractmethod
    def compute_path(self, start: GeoPoint, end: GeoPoint, profile: str) -> PathResult:
        """Return distance, duration and geometry between two points.

        Raises a `BackendError` subclass classifying the failure.
        """

    @abstractmethod
    def test_connectivity(self) -> ConnectivityReport:
        """Run one fixed round trip and report success and latency."""
