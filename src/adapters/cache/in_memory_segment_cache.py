from __future__ import annotations

import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from src.app.ports.output import ISegmentCache
from src.domain.models import CacheEntry


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class InMemorySegmentCache(ISegmentCache):
    """Per-process segment cache shared by every route calculated here.

    Safe for concurrent use from worker threads; on a key collision the last
    writer wins, which is fine since entries are reconstructable. Holds at
    most `max_entries` entries, evicting the least recently used first.
    """

    clock: Callable[[], datetime] = _utcnow
    max_entries: int = 10_000

    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )
    _items: OrderedDict[str, CacheEntry] = field(
        default_factory=OrderedDict, init=False, repr=False
    )
    _hits: int = field(default=0, init=False)
    _misses: int = field(default=0, init=False)
    _evictions: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        self.max_entries = max(1, int(self.max_entries))

    def get(self, key: str) -> CacheEntry | None:
        with self._lock:
            entry = self._items.get(key)
            if entry is None:
                self._misses += 1
                return None
            if entry.is_expired(self.clock()):
                self._items.pop(key, None)
                self._misses += 1
                return None
            self._items.move_to_end(key)
            self._hits += 1
            return entry

    def put(self, key: str, entry: CacheEntry) -> None:
        with self._lock:
            if key in self._items:
                self._items.move_to_end(key)
            self._items[key] = entry

            while len(self._items) > self.max_entries:
                self._items.popitem(last=False)
                self._evictions += 1

    def clear(self) -> int:
        with self._lock:
            cleared = len(self._items)
            self._items.clear()
            return cleared

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return {
                "size": len(self._items),
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "max_entries": self.max_entries,
            }
