"""Unit tests for the Redis entry store – no running Redis required."""
from __future__ import annotations

import asyncio
import fnmatch
import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

pytest.importorskip("redis")

from redis.exceptions import ConnectionError as RedisConnectionError  # noqa: E402

from tagcache.adapters.redis import RedisEntryStore  # noqa: E402
from tagcache.application.cache import MISS, CacheService, EntryStore  # noqa: E402
from tagcache.kernel.errors import BackingStoreUnavailableError, SerializationError  # noqa: E402
from tagcache.testing import FakeClock  # noqa: E402


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _b(value: str | bytes) -> bytes:
    return value if isinstance(value, bytes) else value.encode()


def _s(value: str | bytes) -> str:
    return value.decode() if isinstance(value, bytes) else value


class _FakePipeline:
    def __init__(self, redis: "_FakeRedis") -> None:
        self._redis = redis
        self._ops: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []

    async def __aenter__(self) -> "_FakePipeline":
        return self

    async def __aexit__(self, *exc: object) -> bool:
        return False

    def __getattr__(self, name: str) -> Any:
        def queue(*args: Any, **kwargs: Any) -> "_FakePipeline":
            self._ops.append((name, args, kwargs))
            return self
        return queue

    async def execute(self) -> list[Any]:
        self._redis.transactions += 1
        return [await getattr(self._redis, name)(*args, **kwargs) for name, args, kwargs in self._ops]


class _FakeRedis:
    """Just enough of ``redis.asyncio.Redis`` (bytes responses) for the store."""

    def __init__(self) -> None:
        self.strings: dict[str, bytes] = {}
        self.sets: dict[str, set[bytes]] = {}
        self.transactions = 0
        self.closed = False

    async def get(self, key: str) -> bytes | None:
        return self.strings.get(_s(key))

    async def set(self, key: str, value: str, px: int | None = None) -> bool:
        self.strings[_s(key)] = _b(value)
        return True

    async def mget(self, keys: list[str]) -> list[bytes | None]:
        return [self.strings.get(_s(k)) for k in keys]

    async def delete(self, *keys: Any) -> int:
        removed = 0
        for key in map(_s, keys):
            if self.strings.pop(key, None) is not None:
                removed += 1
            elif self.sets.pop(key, None) is not None:
                removed += 1
        return removed

    async def sadd(self, key: str, *members: str) -> int:
        self.sets.setdefault(_s(key), set()).update(map(_b, members))
        return len(members)

    async def srem(self, key: str, *members: str) -> int:
        bucket = self.sets.get(_s(key), set())
        before = len(bucket)
        bucket.difference_update(map(_b, members))
        if not bucket:
            self.sets.pop(_s(key), None)
        return before - len(bucket)

    async def smembers(self, key: str) -> set[bytes]:
        return set(self.sets.get(_s(key), ()))

    async def sunion(self, keys: list[str]) -> set[bytes]:
        out: set[bytes] = set()
        for key in keys:
            out |= self.sets.get(_s(key), set())
        return out

    async def scan_iter(self, match: str = "*", count: int | None = None):
        for key in list(self.strings) + list(self.sets):
            if fnmatch.fnmatchcase(key, match):
                yield _b(key)

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        self.closed = True

    def pipeline(self, transaction: bool = True) -> _FakePipeline:
        return _FakePipeline(self)


def _store(namespace: str = "cache:") -> tuple[RedisEntryStore, _FakeRedis, Any]:
    redis = _FakeRedis()
    clock = FakeClock()
    return RedisEntryStore(client=redis, namespace=namespace, clock=clock), redis, clock


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestRedisEntryStoreConstruction:
    def test_satisfies_port(self) -> None:
        store, _, _ = _store()
        assert isinstance(store, EntryStore)
        assert store.name == "redis"

    def test_requires_url_or_client(self) -> None:
        with pytest.raises(ValueError):
            RedisEntryStore()

    def test_rejects_empty_namespace(self) -> None:
        with pytest.raises(ValueError, match="namespace"):
            RedisEntryStore(client=_FakeRedis(), namespace="")

    def test_from_url_uses_redis_asyncio(self) -> None:
        import tagcache.adapters.redis.store as store_mod

        mock_aioredis = MagicMock()
        mock_aioredis.from_url = MagicMock(return_value=_FakeRedis())
        with patch.object(store_mod, "_require_redis", return_value=mock_aioredis):
            RedisEntryStore("redis://localhost:6379/0", decode_responses=False)
        mock_aioredis.from_url.assert_called_once_with("redis://localhost:6379/0", decode_responses=False)


# ---------------------------------------------------------------------------
# Reads and writes
# ---------------------------------------------------------------------------


class TestRedisEntryStore:
    def test_set_writes_envelope_and_tags(self) -> None:
        store, redis, clock = _store()
        asyncio.run(store.set("cache:dest:1", {"name": "Lagos"}, 60, ["destinations"]))
        envelope = json.loads(redis.strings["cache:dest:1"])
        assert envelope["v"] == {"name": "Lagos"}
        assert envelope["e"] == clock.timestamp() + 60
        assert envelope["t"] == ["destinations"]
        assert redis.sets["cache:tag:destinations"] == {b"cache:dest:1"}
        assert redis.transactions == 1

    def test_set_passes_px_expiry(self) -> None:
        client = MagicMock()
        client.get = AsyncMock(return_value=None)
        pipe = MagicMock()
        pipe.execute = AsyncMock(return_value=[True])
        pipe.__aenter__ = AsyncMock(return_value=pipe)
        pipe.__aexit__ = AsyncMock(return_value=False)
        client.pipeline = MagicMock(return_value=pipe)
        store = RedisEntryStore(client=client)
        asyncio.run(store.set("cache:k", 1, 1.5))
        assert pipe.set.call_args.kwargs == {"px": 1500}
        client.pipeline.assert_called_once_with(transaction=True)

    def test_get_round_trip(self) -> None:
        store, _, _ = _store()

        async def run() -> Any:
            await store.set("cache:k", [1, "two", None], 60, ["a", "b"])
            return await store.get("cache:k")

        entry = asyncio.run(run())
        assert entry.value == [1, "two", None]
        assert entry.tags == frozenset({"a", "b"})

    def test_get_missing(self) -> None:
        store, _, _ = _store()
        assert asyncio.run(store.get("cache:nope")) is None

    def test_get_expired_deletes(self) -> None:
        store, redis, clock = _store()

        async def run() -> Any:
            await store.set("cache:k", 1, 10, ["t"])
            clock.advance(seconds=10)
            return await store.get("cache:k")

        assert asyncio.run(run()) is None
        assert "cache:k" not in redis.strings
        assert "cache:tag:t" not in redis.sets

    def test_get_unreadable_entry(self) -> None:
        store, redis, _ = _store()
        redis.strings["cache:k"] = b"not json"
        with pytest.raises(SerializationError):
            asyncio.run(store.get("cache:k"))

    def test_set_unserializable_value(self) -> None:
        store, redis, _ = _store()
        with pytest.raises(SerializationError) as exc_info:
            asyncio.run(store.set("cache:k", {1, 2}, 60))
        assert exc_info.value.payload_type == "set"
        assert redis.strings == {}

    def test_set_moves_tags(self) -> None:
        store, redis, _ = _store()

        async def run() -> None:
            await store.set("cache:k", 1, 60, ["old", "shared"])
            await store.set("cache:k", 2, 60, ["shared", "new"])

        asyncio.run(run())
        assert "cache:tag:old" not in redis.sets
        assert redis.sets["cache:tag:shared"] == {b"cache:k"}
        assert redis.sets["cache:tag:new"] == {b"cache:k"}

    # ------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------

    def test_delete_and_delete_many(self) -> None:
        store, redis, _ = _store()

        async def run() -> tuple[bool, int]:
            for key in ("cache:a", "cache:b", "cache:c"):
                await store.set(key, 1, 60, ["t"])
            deleted = await store.delete("cache:a")
            removed = await store.delete_many(["cache:b", "cache:missing", "cache:b"])
            return deleted, removed

        assert asyncio.run(run()) == (True, 1)
        assert redis.sets["cache:tag:t"] == {b"cache:c"}
        assert asyncio.run(store.delete_many([])) == 0

    def test_keys_for_tag_filters_gone_entries(self) -> None:
        store, redis, _ = _store()

        async def run() -> set[str]:
            await store.set("cache:a", 1, 60, ["t"])
            await store.set("cache:b", 2, 60, ["t"])
            del redis.strings["cache:b"]  # expired by Redis
            return await store.keys_for_tag("t")

        assert asyncio.run(run()) == {"cache:a"}
        assert asyncio.run(store.keys_for_tag("none")) == set()

    def test_invalidate_tags(self) -> None:
        store, redis, _ = _store()

        async def run() -> int:
            await store.set("cache:a", 1, 60, ["x"])
            await store.set("cache:b", 2, 60, ["x", "y"])
            await store.set("cache:c", 3, 60, ["z"])
            return await store.invalidate_tags(["x", "y"])

        assert asyncio.run(run()) == 2
        assert set(redis.strings) == {"cache:c"}
        assert set(redis.sets) == {"cache:tag:z"}

    def test_invalidate_unknown_tag(self) -> None:
        store, _, _ = _store()
        assert asyncio.run(store.invalidate_tags(["nothing"])) == 0
        assert asyncio.run(store.invalidate_tags([])) == 0

    def test_purge_expired_prunes_tag_sets(self) -> None:
        store, redis, _ = _store()

        async def run() -> int:
            await store.set("cache:a", 1, 60, ["t", "u"])
            await store.set("cache:b", 2, 60, ["t"])
            del redis.strings["cache:a"]
            return await store.purge_expired()

        assert asyncio.run(run()) == 2
        assert redis.sets == {"cache:tag:t": {b"cache:b"}}

    def test_clear_is_namespaced(self) -> None:
        store, redis, _ = _store(namespace="app1:")
        redis.strings["other:k"] = b"1"

        async def run() -> None:
            await store.set("app1:a", 1, 60, ["t"])
            await store.clear()

        asyncio.run(run())
        assert redis.strings == {"other:k": b"1"}
        assert redis.sets == {}

    def test_ping_and_close(self) -> None:
        store, redis, _ = _store()
        assert asyncio.run(store.ping()) is True
        asyncio.run(store.close())
        assert redis.closed is True


# ---------------------------------------------------------------------------
# Failure mapping
# ---------------------------------------------------------------------------


class TestRedisFailures:
    def _down(self) -> RedisEntryStore:
        client = MagicMock()
        error = RedisConnectionError("Connection refused")
        for name in ("get", "mget", "smembers", "sunion", "ping", "aclose", "delete"):
            setattr(client, name, AsyncMock(side_effect=error))
        return RedisEntryStore(client=client)

    @pytest.mark.parametrize(
        ("operation", "args"),
        [
            ("get", ("cache:k",)),
            ("set", ("cache:k", 1, 60)),
            ("delete_many", (["cache:k"],)),
            ("keys_for_tag", ("t",)),
            ("invalidate_tags", (["t"],)),
            ("ping", ()),
            ("close", ()),
        ],
    )
    def test_redis_errors_become_backing_store_unavailable(self, operation: str, args: tuple) -> None:
        store = self._down()
        with pytest.raises(BackingStoreUnavailableError) as exc_info:
            asyncio.run(getattr(store, operation)(*args))
        assert exc_info.value.backend == "redis"
        assert exc_info.value.detail == {"operation": operation}
        assert isinstance(exc_info.value.cause, RedisConnectionError)

    def test_os_errors_are_mapped(self) -> None:
        client = MagicMock()
        client.ping = AsyncMock(side_effect=OSError("network unreachable"))
        with pytest.raises(BackingStoreUnavailableError):
            asyncio.run(RedisEntryStore(client=client).ping())

    def test_cache_service_fails_open(self) -> None:
        cache = CacheService(self._down())

        async def run() -> tuple[Any, Any, bool]:
            value = await cache.get_or_set("k", lambda: "computed")
            return await cache.get("k"), value, await cache.ping()

        assert asyncio.run(run()) == (MISS, "computed", False)
        assert cache.backend_name == "redis"
