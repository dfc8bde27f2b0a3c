"""Redis adapter – RedisEntryStore."""
from __future__ import annotations

import contextlib
import json
from collections.abc import AsyncIterator, Iterable
from typing import Any

from tagcache.application.cache.entry import CacheEntry
from tagcache.kernel.errors import BackingStoreUnavailableError, SerializationError
from tagcache.kernel.time import Clock, SystemClock

_SCAN_BATCH = 500


def _require_redis() -> Any:
    try:
        import redis.asyncio as aioredis
        return aioredis
    except ImportError as exc:
        raise ImportError("Install 'tagcache[redis]' to use the Redis adapter") from exc


class RedisEntryStore:
    """Entry store backed by Redis.

    Layout under *namespace* (the facade's key prefix, e.g. ``cache:``):

    * ``<key>`` – JSON envelope ``{"v": value, "c": created_at, "e": expires_at, "t": [tags]}``
      written with a millisecond ``PX`` expiry, so Redis reclaims expired
      entries by itself.
    * ``<namespace>tag:<tag>`` – set of keys carrying *tag*.

    Every multi-command write runs in one ``MULTI/EXEC`` pipeline. The sweep
    (:meth:`purge_expired`) drops tag-set members whose entry Redis has
    already expired.

    Connection and command failures surface as
    :class:`BackingStoreUnavailableError`; values that are not JSON
    serializable as :class:`SerializationError`.
    """

    name = "redis"

    def __init__(
        self,
        url: str | None = None,
        *,
        client: Any | None = None,
        namespace: str = "cache:",
        clock: Clock | None = None,
        **kwargs: Any,
    ) -> None:
        if not namespace:
            # clear() and purge_expired() scan "<namespace>*"
            raise ValueError("RedisEntryStore needs a non-empty namespace")
        if client is None:
            if url is None:
                raise ValueError("RedisEntryStore needs either a url or a client")
            client = _require_redis().from_url(url, **kwargs)
        from redis.exceptions import RedisError

        self._client = client
        self._namespace = namespace
        self._tag_prefix = f"{namespace}tag:"
        self._clock: Clock = clock or SystemClock()
        self._errors: tuple[type[BaseException], ...] = (RedisError, OSError)

    # ------------------------------------------------------------------
    # Single-key operations
    # ------------------------------------------------------------------

    async def get(self, key: str) -> CacheEntry | None:
        async with self._guard("get"):
            raw = await self._client.get(key)
        if raw is None:
            return None
        entry = self._decode(key, raw)
        if entry.is_expired(self._clock.timestamp()):
            await self.delete(key)
            return None
        return entry

    async def set(self, key: str, value: Any, ttl: float, tags: Iterable[str] = ()) -> CacheEntry:
        entry = CacheEntry.create(key, value, ttl, tags, now=self._clock.timestamp())
        payload = self._encode(entry)
        async with self._guard("set"):
            previous = await self._client.get(key)
            stale_tags = self._tags_of(key, previous) - entry.tags
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.set(key, payload, px=max(1, int(ttl * 1000)))
                for tag in stale_tags:
                    pipe.srem(self._tag_key(tag), key)
                for tag in entry.tags:
                    pipe.sadd(self._tag_key(tag), key)
                await pipe.execute()
        return entry

    async def delete(self, key: str) -> bool:
        return await self.delete_many([key]) > 0

    # ------------------------------------------------------------------
    # Multi-key operations
    # ------------------------------------------------------------------

    async def delete_many(self, keys: Iterable[str]) -> int:
        keys = list(dict.fromkeys(keys))
        if not keys:
            return 0
        async with self._guard("delete_many"):
            payloads = await self._client.mget(keys)
            return await self._remove(keys, payloads)

    async def keys_for_tag(self, tag: str) -> set[str]:
        async with self._guard("keys_for_tag"):
            members = await self._client.smembers(self._tag_key(tag))
            if not members:
                return set()
            keys = sorted(self._text(m) for m in members)
            present = await self._client.mget(keys)
        return {key for key, raw in zip(keys, present) if raw is not None}

    async def invalidate_tags(self, tags: Iterable[str]) -> int:
        tag_keys = [self._tag_key(tag) for tag in dict.fromkeys(tags)]
        if not tag_keys:
            return 0
        async with self._guard("invalidate_tags"):
            members = await self._client.sunion(tag_keys)
            keys = sorted(self._text(m) for m in members)
            if not keys:
                await self._client.delete(*tag_keys)
                return 0
            payloads = await self._client.mget(keys)
            return await self._remove(keys, payloads, extra_deletes=tag_keys)

    async def purge_expired(self) -> int:
        """Drop tag-set members whose entries no longer exist."""
        purged = 0
        async with self._guard("purge_expired"):
            async for tag_key in self._scan(f"{self._tag_prefix}*"):
                members = sorted(self._text(m) for m in await self._client.smembers(tag_key))
                if not members:
                    continue
                present = await self._client.mget(members)
                gone = [key for key, raw in zip(members, present) if raw is None]
                if gone:
                    await self._client.srem(tag_key, *gone)
                    purged += len(gone)
        return purged

    async def clear(self) -> None:
        async with self._guard("clear"):
            batch: list[Any] = []
            async for key in self._scan(f"{self._namespace}*"):
                batch.append(key)
                if len(batch) >= _SCAN_BATCH:
                    await self._client.delete(*batch)
                    batch = []
            if batch:
                await self._client.delete(*batch)

    async def ping(self) -> bool:
        async with self._guard("ping"):
            return bool(await self._client.ping())

    async def close(self) -> None:
        async with self._guard("close"):
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @contextlib.asynccontextmanager
    async def _guard(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except self._errors as exc:
            raise BackingStoreUnavailableError(
                "redis",
                f"Redis {operation} failed: {exc}",
                detail={"operation": operation},
                cause=exc,
            ) from exc

    async def _remove(self, keys: list[str], payloads: list[Any], extra_deletes: list[str] | None = None) -> int:
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.delete(*keys)
            for key, raw in zip(keys, payloads):
                for tag in self._tags_of(key, raw):
                    pipe.srem(self._tag_key(tag), key)
            if extra_deletes:
                pipe.delete(*extra_deletes)
            results = await pipe.execute()
        return int(results[0])

    async def _scan(self, pattern: str) -> AsyncIterator[Any]:
        async for key in self._client.scan_iter(match=pattern, count=_SCAN_BATCH):
            yield key

    def _tag_key(self, tag: str) -> str:
        return f"{self._tag_prefix}{tag}"

    def _tags_of(self, key: str, raw: Any) -> frozenset[str]:
        """Tags recorded in a stored envelope; an unreadable one has none."""
        if raw is None:
            return frozenset()
        try:
            return self._decode(key, raw).tags
        except SerializationError:
            return frozenset()

    @staticmethod
    def _text(value: Any) -> str:
        return value.decode() if isinstance(value, bytes) else str(value)

    @staticmethod
    def _encode(entry: CacheEntry) -> str:
        envelope = {
            "v": entry.value,
            "c": entry.created_at,
            "e": entry.expires_at,
            "t": sorted(entry.tags),
        }
        try:
            return json.dumps(envelope, separators=(",", ":"))
        except (TypeError, ValueError) as exc:
            raise SerializationError(
                f"Value for '{entry.key}' is not JSON serializable",
                payload_type=type(entry.value).__name__,
                cause=exc,
            ) from exc

    @staticmethod
    def _decode(key: str, raw: Any) -> CacheEntry:
        try:
            envelope = json.loads(raw)
            return CacheEntry(
                key=key,
                value=envelope["v"],
                created_at=float(envelope["c"]),
                expires_at=float(envelope["e"]),
                tags=frozenset(envelope.get("t", ())),
            )
        except (TypeError, ValueError, KeyError) as exc:
            raise SerializationError(f"Stored entry for '{key}' is unreadable", cause=exc) from exc


__all__ = ["RedisEntryStore"]
