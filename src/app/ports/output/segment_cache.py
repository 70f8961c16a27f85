from __future__ import annotations

from abc import ABC, abstractmethod

from src.domain.models import CacheEntry


class ISegmentCache(ABC):
    """Coordinate-addressed cache of pairwise path results."""

    @abstractmethod
    def get(self, key: str) -> CacheEntry | None:
        """Return the entry, or None on a miss or when it has expired."""

    @abstractmethod
    def put(self, key: str, entry: CacheEntry) -> None:
        """Store an entry; its `expires_at` carries the TTL."""
