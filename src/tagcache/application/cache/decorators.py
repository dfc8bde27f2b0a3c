"""Application cache – @cached decorator."""
from __future__ import annotations

import functools
from typing import Any, Awaitable, Callable, TypeVar

from tagcache.application.cache.service import CacheService

__all__ = ["cached"]

T = TypeVar("T")


def cached(
    cache: CacheService,
    ttl: float | None = None,
    key_fn: Callable[..., str] | None = None,
    tags: list[str] | None = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Decorator: serve an async function's result through ``cache.get_or_set``.

    *key_fn* receives the same args/kwargs as the wrapped function; without
    it the key is built from the function's qualified name and arguments.
    Concurrent calls with the same key share one invocation.
    """

    def decorator(fn: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            if key_fn is not None:
                key = key_fn(*args, **kwargs)
            else:
                key = f"{fn.__qualname__}:{args}:{sorted(kwargs.items())}"
            return await cache.get_or_set(key, lambda: fn(*args, **kwargs), ttl=ttl, tags=tags)

        wrapper._cache = cache  # type: ignore[attr-defined]
        return wrapper

    return decorator
