from .dynamodb_segment_cache import DynamoDbSegmentCache
from .in_memory_segment_cache import InMemorySegmentCache

__all__ = [
    "DynamoDbSegmentCache",
    "InMemorySegmentCache",
]
