"""Application cache – CacheWarmupService."""
from __future__ import annotations

import asyncio
import dataclasses
from typing import Any, Awaitable, Callable

from tagcache.application.cache.entry import CacheOptions, WarmUpItem
from tagcache.application.cache.service import CacheService
from tagcache.observability.logging import get_logger

__all__ = ["CacheWarmupService"]

_log = get_logger(__name__)


@dataclasses.dataclass(frozen=True)
class _Loader:
    fn: Callable[[], Awaitable[Any]]
    options: CacheOptions


class CacheWarmupService:
    """Pre-populates frequently requested keys, typically at startup.

    Loaders are registered per key; :meth:`warm_all` runs them concurrently
    and hands the results to ``CacheService.warm_up``. A loader that fails is
    logged and skipped.
    """

    def __init__(self, cache: CacheService) -> None:
        self._cache = cache
        self._loaders: dict[str, _Loader] = {}

    def register(
        self,
        key: str,
        loader: Callable[[], Awaitable[Any]],
        *,
        ttl: float | None = None,
        tags: list[str] | None = None,
    ) -> None:
        self._loaders[key] = _Loader(loader, CacheOptions(ttl=ttl, tags=tuple(tags or ())))

    @property
    def keys(self) -> list[str]:
        return list(self._loaders)

    async def warm(self, key: str) -> Any:
        """Run one loader and store its result; loader errors propagate."""
        if key not in self._loaders:
            raise KeyError(f"No loader registered for key: {key!r}")
        loader = self._loaders[key]
        value = await loader.fn()
        await self._cache.set(key, value, loader.options)
        return value

    async def warm_all(self) -> int:
        """Run every loader; returns the number of entries stored."""
        keys = list(self._loaders)
        results = await asyncio.gather(
            *(self._loaders[key].fn() for key in keys),
            return_exceptions=True,
        )
        items: list[WarmUpItem] = []
        for key, result in zip(keys, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                _log.warning("cache_warm_up_loader_failed", key=key, error=str(result))
                continue
            items.append(WarmUpItem(key=key, value=result, options=self._loaders[key].options))
        return await self._cache.warm_up(items)
