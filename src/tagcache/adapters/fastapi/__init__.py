"""FastAPI adapter – response caching middleware and cache operations router."""
from tagcache.adapters.fastapi.middleware import (
    CacheMiddleware,
    CacheMiddlewareOptions,
    CachedResponse,
    cache_response,
    default_cache_key,
)
from tagcache.adapters.fastapi.routers import cache_router

__all__ = [
    "CacheMiddleware",
    "CacheMiddlewareOptions",
    "CachedResponse",
    "cache_response",
    "cache_router",
    "default_cache_key",
]
