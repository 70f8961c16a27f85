from __future__ import annotations

from functools import lru_cache

from src.adapters.bootstrap import Engine, build_engine
from src.app.ports.output import IRoutingBackend
from src.app.services.route_editing_service import RouteEditingService


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    # One engine per process: the in-memory store and cache must be shared.
    return build_engine()


def get_route_editing_service() -> RouteEditingService:
    return get_engine().editing


def get_routing_backend() -> IRoutingBackend:
    return get_engine().backend
