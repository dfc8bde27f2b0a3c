from __future__ import annotations

from typing import TYPE_CHECKING

from tagcache.observability.health.check import HealthCheck, HealthStatus

if TYPE_CHECKING:
    from tagcache.application.cache.service import CacheService

__all__ = ["CacheHealthCheck"]


class CacheHealthCheck(HealthCheck):
    """Pings the cache backend and reports the current hit rate.

    The backend being unreachable marks the check unhealthy; the hit rate is
    informational only because the cache fails open.
    """

    def __init__(self, cache: "CacheService", name: str = "cache") -> None:
        self._cache = cache
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    async def check(self) -> HealthStatus:
        connected = await self._cache.ping()
        data = {
            "backend": self._cache.backend_name,
            "hit_rate": round(self._cache.get_hit_rate(), 2),
        }
        if connected:
            return HealthStatus(healthy=True, data=data)
        return HealthStatus(healthy=False, detail="backend unreachable", data=data)
