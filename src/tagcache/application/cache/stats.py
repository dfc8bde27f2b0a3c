"""Application cache – hit/miss accounting."""
from __future__ import annotations

import dataclasses
import threading
from typing import Any

__all__ = ["CacheStats", "StatsCollector"]


@dataclasses.dataclass(frozen=True)
class CacheStats:
    """Point-in-time copy of the collector's counters."""

    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    invalidations: int = 0

    @property
    def total_requests(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        total = self.total_requests
        return 0.0 if total == 0 else self.hits / total

    def to_dict(self) -> dict[str, Any]:
        return {**dataclasses.asdict(self), "total_requests": self.total_requests}


class StatsCollector:
    """Thread-safe counters.

    * ``hits`` / ``misses`` – one per ``get`` or ``get_or_set`` resolution
    * ``sets`` – successful writes
    * ``deletes`` – entries removed by delete, delete_many or tag invalidation
    * ``invalidations`` – ``invalidate_by_tags`` calls
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counts = dict.fromkeys(("hits", "misses", "sets", "deletes", "invalidations"), 0)

    def record_hit(self) -> None:
        self._add("hits", 1)

    def record_miss(self) -> None:
        self._add("misses", 1)

    def record_set(self, count: int = 1) -> None:
        self._add("sets", count)

    def record_delete(self, count: int = 1) -> None:
        self._add("deletes", count)

    def record_invalidation(self) -> None:
        self._add("invalidations", 1)

    def snapshot(self) -> CacheStats:
        with self._lock:
            return CacheStats(**self._counts)

    def hit_rate(self) -> float:
        return self.snapshot().hit_rate

    def reset(self) -> None:
        with self._lock:
            for name in self._counts:
                self._counts[name] = 0

    def _add(self, name: str, count: int) -> None:
        if count <= 0:
            return
        with self._lock:
            self._counts[name] += count
