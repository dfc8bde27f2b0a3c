"""Application cache – CacheManager (entity invalidation and performance reporting)."""
from __future__ import annotations

import dataclasses
from typing import Any, Literal

from tagcache.application.cache.keys import CacheKey, CacheTags
from tagcache.application.cache.service import CacheService
from tagcache.application.cache.stats import CacheStats
from tagcache.observability.logging import get_logger

__all__ = ["CacheManager", "PerformanceReport", "PerformanceStatus"]

_log = get_logger(__name__)

PerformanceStatus = Literal["excellent", "good", "fair", "needs_improvement"]

MIN_HEALTHY_HIT_RATE = 0.3


@dataclasses.dataclass(frozen=True)
class PerformanceReport:
    stats: CacheStats
    hit_rate: float
    status: PerformanceStatus
    recommendations: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "stats": self.stats.to_dict(),
            "hit_rate": round(self.hit_rate, 2),
            "hit_rate_percentage": round(self.hit_rate * 100),
            "status": self.status,
            "recommendations": list(self.recommendations),
        }


class CacheManager:
    """Operational helpers on top of :class:`CacheService`.

    Entity invalidation always goes through the bulk primitives
    (``delete_many`` and ``invalidate_by_tags``).
    """

    def __init__(self, cache: CacheService) -> None:
        self._cache = cache

    async def invalidate_entity(self, entity_type: str, entity_id: str | int | None = None) -> int:
        """Drop every cached read tagged *entity_type*, plus the by-id key of *entity_id*."""
        removed = 0
        if entity_id is not None:
            removed += await self._cache.delete_many([CacheKey.for_resource(entity_type, entity_id)])
        removed += await self._cache.invalidate_by_tags([entity_type])
        _log.info("cache_entity_invalidated", entity_type=entity_type, entity_id=entity_id, removed=removed)
        return removed

    async def invalidate_all(self) -> int:
        """Invalidate every known entity tag."""
        return await self._cache.invalidate_by_tags(CacheTags.all())

    def performance_report(self) -> PerformanceReport:
        stats = self._cache.get_stats()
        return PerformanceReport(
            stats=stats,
            hit_rate=stats.hit_rate,
            status=self.status_for(stats.hit_rate),
            recommendations=self.recommendations(stats),
        )

    def health_check(self) -> dict[str, Any]:
        """Hit-rate based health summary; no lookups yet counts as healthy."""
        stats = self._cache.get_stats()
        healthy = stats.total_requests == 0 or stats.hit_rate >= MIN_HEALTHY_HIT_RATE
        return {
            "healthy": healthy,
            "stats": stats.to_dict(),
            "hit_rate": round(stats.hit_rate, 2),
            "message": (
                "Cache system is healthy"
                if healthy
                else "Cache system needs attention - low hit rate detected"
            ),
        }

    @staticmethod
    def status_for(hit_rate: float) -> PerformanceStatus:
        if hit_rate >= 0.8:
            return "excellent"
        if hit_rate >= 0.6:
            return "good"
        if hit_rate >= 0.4:
            return "fair"
        return "needs_improvement"

    @staticmethod
    def recommendations(stats: CacheStats) -> list[str]:
        hit_rate = stats.hit_rate
        advice: list[str] = []
        if hit_rate < 0.4:
            advice.append("Consider increasing TTL values for frequently accessed data")
            advice.append("Review cache key generation to ensure proper cache utilization")
            advice.append("Check if cache invalidation is happening too frequently")
        if stats.misses > stats.hits * 2:
            advice.append("High miss rate detected - consider implementing cache warming")
        if stats.deletes > stats.sets * 0.5:
            advice.append("High deletion rate - review cache invalidation strategy")
        if hit_rate > 0.9:
            advice.append("Excellent cache performance! Consider optimizing TTL for cost savings")
        return advice
