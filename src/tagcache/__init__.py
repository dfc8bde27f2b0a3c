"""
tagcache – tag-indexed, TTL-based response cache.

Import path convention::

    from tagcache.application.cache import CacheService, CacheOptions, MISS
    from tagcache.adapters.fastapi import CacheMiddleware
    from tagcache.kernel.errors import ComputeError
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
