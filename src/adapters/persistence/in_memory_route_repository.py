from __future__ import annotations

import threading
from dataclasses import dataclass, field

from src.app.ports.output import IRouteRepository
from src.domain.exceptions import ConcurrentModification
from src.domain.models import Route


@dataclass(slots=True)
class InMemoryRouteRepository(IRouteRepository):
    """Process-local route store.

    Callers always receive copies, so a route being edited is never visible
    to other readers until `save` commits it.
    """

    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )
    _routes: dict[str, Route] = field(default_factory=dict, init=False, repr=False)

    def get(self, route_id: str) -> Route | None:
        with self._lock:
            stored = self._routes.get(route_id)
            return stored.copy() if stored is not None else None

    def save(self, route: Route) -> Route:
        with self._lock:
            stored = self._routes.get(route.id)
            stored_version = stored.version if stored is not None else 0
            if stored_version != route.version:
                raise ConcurrentModification(
                    f"Route {route.id} changed: stored version {stored_version}, "
                    f"write based on {route.version}"
                )
            route.version += 1
            self._routes[route.id] = route.copy()
            return route

    def delete(self, route_id: str) -> bool:
        with self._lock:
            return self._routes.pop(route_id, None) is not None
