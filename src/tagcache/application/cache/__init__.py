"""Application cache – tag-indexed TTL cache facade and its building blocks."""
from tagcache.application.cache.decorators import cached
from tagcache.application.cache.entry import MISS, CacheEntry, CacheOptions, WarmUpItem
from tagcache.application.cache.expiry import ExpirySweeper
from tagcache.application.cache.keys import CacheKey, CacheKeys, CacheTags
from tagcache.application.cache.manager import CacheManager, PerformanceReport
from tagcache.application.cache.service import CacheService
from tagcache.application.cache.singleflight import SingleFlight
from tagcache.application.cache.stats import CacheStats, StatsCollector
from tagcache.application.cache.store import EntryStore, InMemoryEntryStore
from tagcache.application.cache.tags import TagIndex
from tagcache.application.cache.warmup import CacheWarmupService

__all__ = [
    "MISS",
    "CacheEntry",
    "CacheKey",
    "CacheKeys",
    "CacheManager",
    "CacheOptions",
    "CacheService",
    "CacheStats",
    "CacheTags",
    "CacheWarmupService",
    "EntryStore",
    "ExpirySweeper",
    "InMemoryEntryStore",
    "PerformanceReport",
    "SingleFlight",
    "StatsCollector",
    "TagIndex",
    "WarmUpItem",
    "cached",
]
