"""Redis adapter – entry store for the cache facade."""
from tagcache.adapters.redis.store import RedisEntryStore

__all__ = ["RedisEntryStore"]
