from .dynamodb_route_repository import DynamoDbRouteRepository
from .in_memory_route_repository import InMemoryRouteRepository

__all__ = [
    "DynamoDbRouteRepository",
    "InMemoryRouteRepository",
]
