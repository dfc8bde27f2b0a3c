"""Application cache – EntryStore port and the striped in-memory implementation."""
from __future__ import annotations

import asyncio
import contextlib
import copy
import dataclasses
import threading
import zlib
from collections.abc import Iterable, Iterator
from typing import Any, Protocol, runtime_checkable

from tagcache.application.cache.entry import CacheEntry
from tagcache.application.cache.tags import TagIndex
from tagcache.kernel.errors import SerializationError
from tagcache.kernel.time import Clock, SystemClock

__all__ = ["EntryStore", "InMemoryEntryStore"]


@runtime_checkable
class EntryStore(Protocol):
    """Port: storage for cache entries and their tag index.

    Implementations raise :class:`~tagcache.kernel.errors.BackingStoreUnavailableError`
    when the storage cannot be reached and
    :class:`~tagcache.kernel.errors.SerializationError` when a value cannot be
    stored or read back. A miss is ``None``, never an exception.
    """

    name: str

    async def get(self, key: str) -> CacheEntry | None: ...
    async def set(self, key: str, value: Any, ttl: float, tags: Iterable[str] = ()) -> CacheEntry: ...
    async def delete(self, key: str) -> bool: ...
    async def delete_many(self, keys: Iterable[str]) -> int: ...
    async def keys_for_tag(self, tag: str) -> set[str]: ...
    async def invalidate_tags(self, tags: Iterable[str]) -> int: ...
    async def purge_expired(self) -> int: ...
    async def clear(self) -> None: ...
    async def ping(self) -> bool: ...
    async def close(self) -> None: ...


class _Stripe:
    __slots__ = ("entries", "lock")

    def __init__(self) -> None:
        self.entries: dict[str, CacheEntry] = {}
        self.lock = threading.Lock()


class InMemoryEntryStore:
    """Process-local store with lock striping.

    Keys are spread over *stripes* partitions, each guarded by its own
    ``threading.Lock``; operations on unrelated keys do not contend. Critical
    sections never await, so the store is safe to share between event-loop
    tasks and worker threads.

    Multi-key operations (``delete_many``, ``invalidate_tags``, ``clear``)
    lock only the stripes they touch, always in ascending stripe order.

    Values are deep-copied on the way in and on the way out: mutating the
    object passed to ``set`` or returned by ``get`` never changes the
    cached entry.
    """

    name = "memory"

    def __init__(self, stripes: int = 16, clock: Clock | None = None) -> None:
        if stripes <= 0:
            raise ValueError("stripes must be positive")
        self._stripes = [_Stripe() for _ in range(stripes)]
        self._tags = TagIndex()
        self._clock: Clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Single-key operations
    # ------------------------------------------------------------------

    async def get(self, key: str) -> CacheEntry | None:
        stripe = self._stripes[self._index(key)]
        now = self._clock.timestamp()
        with stripe.lock:
            entry = stripe.entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(now):
                del stripe.entries[key]
                self._tags.discard(key, entry.tags)
                return None
        return dataclasses.replace(entry, value=_isolated(key, entry.value))

    async def set(self, key: str, value: Any, ttl: float, tags: Iterable[str] = ()) -> CacheEntry:
        entry = CacheEntry.create(key, _isolated(key, value), ttl, tags, now=self._clock.timestamp())
        stripe = self._stripes[self._index(key)]
        with stripe.lock:
            previous = stripe.entries.get(key)
            self._tags.replace(key, previous.tags if previous else frozenset(), entry.tags)
            stripe.entries[key] = entry
        return dataclasses.replace(entry, value=value)

    async def delete(self, key: str) -> bool:
        stripe = self._stripes[self._index(key)]
        with stripe.lock:
            return self._remove_locked(stripe, key, self._clock.timestamp())

    # ------------------------------------------------------------------
    # Multi-key operations
    # ------------------------------------------------------------------

    async def delete_many(self, keys: Iterable[str]) -> int:
        groups = self._group(keys)
        now = self._clock.timestamp()
        removed = 0
        with self._locked(groups):
            for index, stripe_keys in groups.items():
                stripe = self._stripes[index]
                for key in stripe_keys:
                    removed += self._remove_locked(stripe, key, now)
        return removed

    async def keys_for_tag(self, tag: str) -> set[str]:
        now = self._clock.timestamp()
        live: set[str] = set()
        for key in self._tags.keys_for_tag(tag):
            stripe = self._stripes[self._index(key)]
            with stripe.lock:
                entry = stripe.entries.get(key)
            if entry is not None and tag in entry.tags and not entry.is_expired(now):
                live.add(key)
        return live

    async def invalidate_tags(self, tags: Iterable[str]) -> int:
        wanted = frozenset(tags)
        keys = self._tags.keys_for(wanted)
        if not keys:
            return 0
        groups = self._group(keys)
        now = self._clock.timestamp()
        removed = 0
        with self._locked(groups):
            for index, stripe_keys in groups.items():
                stripe = self._stripes[index]
                for key in stripe_keys:
                    entry = stripe.entries.get(key)
                    if entry is None or not entry.tags & wanted:
                        # re-set without these tags, or already gone: drop the stale pairs only
                        self._tags.discard(key, wanted)
                        continue
                    removed += self._remove_locked(stripe, key, now)
        return removed

    async def purge_expired(self) -> int:
        """Remove expired entries one stripe at a time."""
        purged = 0
        for stripe in self._stripes:
            now = self._clock.timestamp()
            with stripe.lock:
                expired = [key for key, entry in stripe.entries.items() if entry.is_expired(now)]
                for key in expired:
                    entry = stripe.entries.pop(key)
                    self._tags.discard(key, entry.tags)
            purged += len(expired)
            await asyncio.sleep(0)
        return purged

    async def clear(self) -> None:
        with self._locked(range(len(self._stripes))):
            for stripe in self._stripes:
                stripe.entries.clear()
            self._tags.clear()

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        """Number of stored entries, expired-but-unswept ones included."""
        return sum(len(stripe.entries) for stripe in self._stripes)

    @property
    def tag_index(self) -> TagIndex:
        return self._tags

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _index(self, key: str) -> int:
        return zlib.crc32(key.encode()) % len(self._stripes)

    def _group(self, keys: Iterable[str]) -> dict[int, list[str]]:
        groups: dict[int, list[str]] = {}
        for key in dict.fromkeys(keys):
            groups.setdefault(self._index(key), []).append(key)
        return groups

    @contextlib.contextmanager
    def _locked(self, indices: Iterable[int]) -> Iterator[None]:
        with contextlib.ExitStack() as stack:
            for index in sorted(indices):
                stack.enter_context(self._stripes[index].lock)
            yield

    def _remove_locked(self, stripe: _Stripe, key: str, now: float) -> bool:
        entry = stripe.entries.pop(key, None)
        if entry is None:
            return False
        self._tags.discard(key, entry.tags)
        return not entry.is_expired(now)


def _isolated(key: str, value: Any) -> Any:
    try:
        return copy.deepcopy(value)
    except Exception as exc:
        raise SerializationError(
            f"Cannot copy value for '{key}'",
            payload_type=type(value).__name__,
            detail={"key": key},
            cause=exc,
        ) from exc
