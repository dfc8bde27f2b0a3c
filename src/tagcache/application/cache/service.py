"""Application cache – CacheService facade."""
from __future__ import annotations

import asyncio
import inspect
from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Awaitable, Callable, TypeVar, Union

from tagcache.application.cache.entry import MISS, CacheEntry, CacheOptions, WarmUpItem
from tagcache.application.cache.expiry import ExpirySweeper
from tagcache.application.cache.singleflight import SingleFlight
from tagcache.application.cache.stats import CacheStats, StatsCollector
from tagcache.application.cache.store import EntryStore, InMemoryEntryStore
from tagcache.kernel.errors import ComputeError, InfrastructureError
from tagcache.kernel.time import Clock, SystemClock
from tagcache.observability.logging import get_logger
from tagcache.resilience.deadline import DeadlineContext

if TYPE_CHECKING:
    from tagcache.config.settings.cache import CacheSettings

__all__ = ["CacheService"]

T = TypeVar("T")

_log = get_logger(__name__)

OptionsLike = Union[CacheOptions, Mapping[str, Any], None]
Compute = Callable[[], Union[T, Awaitable[T]]]


class CacheService:
    """Tag-indexed TTL cache facade used by request handlers and middleware.

    Internal failures (backend unreachable, unserializable value) never reach
    the caller: reads degrade to :data:`MISS`, writes to no-ops, and the
    condition is logged. The only errors raised are :class:`ComputeError`
    from ``get_or_set`` and :class:`~tagcache.kernel.errors.TimeoutError`
    when a waiter's deadline passes.

    Construct one per process and inject it; ``start()`` launches the expiry
    sweep and ``shutdown()`` stops it and closes the backend::

        async with CacheService(default_ttl=300) as cache:
            await cache.set("dest:1", {"name": "Lagos"}, tags=["destinations"])
    """

    def __init__(
        self,
        store: EntryStore | None = None,
        *,
        default_ttl: float = 300,
        key_prefix: str = "cache:",
        sweep_interval: float = 60.0,
        wait_timeout: float | None = None,
        clock: Clock | None = None,
    ) -> None:
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        self._store: EntryStore = store or InMemoryEntryStore(clock=clock or SystemClock())
        self._default_ttl = default_ttl
        self._prefix = key_prefix
        self._wait_timeout = wait_timeout
        self._stats = StatsCollector()
        self._flight: SingleFlight[Any] = SingleFlight()
        self._sweeper = ExpirySweeper(self._store, interval=sweep_interval)

    @classmethod
    def from_settings(cls, settings: "CacheSettings", clock: Clock | None = None) -> "CacheService":
        """Build a service and its backend from :class:`CacheSettings`."""
        store: EntryStore
        if settings.backend == "redis":
            from tagcache.adapters.redis import RedisEntryStore

            store = RedisEntryStore(settings.redis_url, namespace=settings.key_prefix, clock=clock)
        else:
            store = InMemoryEntryStore(stripes=settings.stripes, clock=clock)
        return cls(
            store,
            default_ttl=settings.default_ttl,
            key_prefix=settings.key_prefix,
            sweep_interval=settings.sweep_interval,
            wait_timeout=settings.wait_timeout,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        await self._sweeper.start()

    async def shutdown(self) -> None:
        await self._sweeper.stop()
        try:
            await self._store.close()
        except InfrastructureError as exc:
            self._degraded("close", None, exc)

    async def __aenter__(self) -> "CacheService":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.shutdown()

    @property
    def store(self) -> EntryStore:
        return self._store

    @property
    def backend_name(self) -> str:
        return self._store.name

    @property
    def default_ttl(self) -> float:
        return self._default_ttl

    @property
    def sweeper(self) -> ExpirySweeper:
        return self._sweeper

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, key: str) -> Any:
        """Return the cached value or :data:`MISS`."""
        entry = await self._lookup(self._key(key))
        if entry is None:
            self._stats.record_miss()
            return MISS
        self._stats.record_hit()
        return entry.value

    async def exists(self, key: str) -> bool:
        """Whether a live entry exists; does not count as a lookup."""
        return await self._lookup(self._key(key)) is not None

    async def get_or_set(
        self,
        key: str,
        compute: Compute[T],
        options: OptionsLike = None,
        *,
        ttl: float | None = None,
        tags: Iterable[str] | None = None,
        timeout: float | None = None,
    ) -> T:
        """Return the cached value, computing and storing it on a miss.

        Concurrent callers missing on the same key share one computation.
        *compute* may be a plain or an async callable. When it raises, every
        caller sharing the computation gets a :class:`ComputeError` and
        nothing is stored.

        *timeout* bounds how long this caller waits for someone else's
        computation and is capped by the active
        :class:`~tagcache.resilience.deadline.DeadlineContext` deadline.
        Without it the deadline's remaining time applies, then the
        service-wide ``wait_timeout``.
        """
        opts = CacheOptions.coerce(options).merged(ttl=ttl, tags=tags)
        full_key = self._key(key)

        entry = await self._lookup(full_key)
        if entry is not None:
            self._stats.record_hit()
            return entry.value
        self._stats.record_miss()

        async def load() -> T:
            # another leader may have finished between our lookup and now
            fresh = await self._lookup(full_key)
            if fresh is not None:
                return fresh.value
            try:
                value = compute()
                if inspect.isawaitable(value):
                    value = await value
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                raise ComputeError(key, cause=exc) from exc
            await self._write(full_key, value, opts)
            return value

        value, _shared = await self._flight.do(full_key, load, timeout=self._wait_for(timeout))
        return value

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def set(
        self,
        key: str,
        value: Any,
        options: OptionsLike = None,
        *,
        ttl: float | None = None,
        tags: Iterable[str] | None = None,
    ) -> bool:
        """Insert or fully replace *key*. ``False`` when the write was dropped."""
        opts = CacheOptions.coerce(options).merged(ttl=ttl, tags=tags)
        return await self._write(self._key(key), value, opts)

    async def warm_up(self, items: Iterable[WarmUpItem | Mapping[str, Any]]) -> int:
        """Bulk ``set``; malformed items are logged and skipped.

        Returns the number of entries stored.
        """
        valid: list[WarmUpItem] = []
        for index, raw in enumerate(items):
            try:
                valid.append(WarmUpItem.coerce(raw))
            except (TypeError, ValueError) as exc:
                _log.warning("cache_warm_up_item_skipped", index=index, error=str(exc))
        results = await asyncio.gather(
            *(self._write(self._key(item.key), item.value, item.options) for item in valid)
        )
        stored = sum(results)
        _log.info("cache_warm_up_completed", requested=len(valid), stored=stored)
        return stored

    # ------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------

    async def delete(self, key: str) -> bool:
        try:
            removed = await self._store.delete(self._key(key))
        except InfrastructureError as exc:
            self._degraded("delete", key, exc)
            return False
        if removed:
            self._stats.record_delete()
        return removed

    async def delete_many(self, keys: Sequence[str]) -> int:
        """Remove exactly *keys*; returns how many of them were present."""
        if isinstance(keys, str):
            raise TypeError("delete_many expects a sequence of keys, not a string")
        keys = list(keys)
        if not keys:
            return 0
        try:
            removed = await self._store.delete_many([self._key(k) for k in keys])
        except InfrastructureError as exc:
            self._degraded("delete_many", None, exc, count=len(keys))
            return 0
        self._stats.record_delete(removed)
        return removed

    async def invalidate_by_tags(self, tags: Sequence[str]) -> int:
        """Remove every entry carrying any of *tags*; returns entries removed."""
        if isinstance(tags, str):
            raise TypeError("invalidate_by_tags expects a sequence of tags, not a string")
        tags = list(tags)
        self._stats.record_invalidation()
        if not tags:
            return 0
        try:
            removed = await self._store.invalidate_tags(tags)
        except InfrastructureError as exc:
            self._degraded("invalidate_by_tags", None, exc, tags=tags)
            return 0
        self._stats.record_delete(removed)
        _log.debug("cache_tags_invalidated", tags=tags, removed=removed)
        return removed

    async def clear_all(self) -> bool:
        """Wipe every entry and tag. ``False`` only if the backend is unreachable."""
        try:
            await self._store.clear()
        except InfrastructureError as exc:
            self._degraded("clear_all", None, exc)
            return False
        _log.info("cache_cleared", backend=self._store.name)
        return True

    # ------------------------------------------------------------------
    # Stats / health
    # ------------------------------------------------------------------

    def get_stats(self) -> CacheStats:
        return self._stats.snapshot()

    def get_hit_rate(self) -> float:
        return self._stats.hit_rate()

    def reset_stats(self) -> None:
        self._stats.reset()

    async def ping(self) -> bool:
        try:
            return await self._store.ping()
        except InfrastructureError as exc:
            self._degraded("ping", None, exc)
            return False

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _key(self, key: str) -> str:
        if not isinstance(key, str) or not key:
            raise ValueError(f"cache key must be a non-empty string, got {key!r}")
        return f"{self._prefix}{key}"

    def _wait_for(self, timeout: float | None) -> float | None:
        return DeadlineContext.wait_timeout(timeout, self._wait_timeout)

    async def _lookup(self, full_key: str) -> CacheEntry | None:
        try:
            return await self._store.get(full_key)
        except InfrastructureError as exc:
            self._degraded("get", full_key, exc)
            return None

    async def _write(self, full_key: str, value: Any, options: CacheOptions) -> bool:
        ttl = options.ttl if options.ttl is not None else self._default_ttl
        try:
            await self._store.set(full_key, value, ttl, options.tags)
        except InfrastructureError as exc:
            self._degraded("set", full_key, exc)
            return False
        self._stats.record_set()
        return True

    def _degraded(self, operation: str, key: str | None, exc: InfrastructureError, **fields: Any) -> None:
        _log.warning(
            "cache_operation_degraded",
            operation=operation,
            key=key,
            backend=self._store.name,
            **exc.log_fields(),
            **fields,
        )
