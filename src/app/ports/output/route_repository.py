from __future__ import annotations

from abc import ABC, abstractmethod

from src.domain.models import Route


class IRouteRepository(ABC):
    """Persistence port for the Route aggregate (route, waypoints, segments).

    `save` writes the whole aggregate as one unit and must reject a write whose
    `version` does not match the stored one (ConcurrentModification).
    """

    @abstractmethod
    def get(self, route_id: str) -> Route | None:
        raise NotImplementedError

    @abstractmethod
    def save(self, route: Route) -> Route:
        """Persist and return the aggregate with its version incremented."""

    @abstractmethod
    def delete(self, route_id: str) -> bool:
        raise NotImplementedError
