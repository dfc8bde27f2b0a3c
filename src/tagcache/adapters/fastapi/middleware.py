"""FastAPI adapter – HTTP response caching.

``CacheMiddleware``  ASGI middleware caching whole GET responses
``cache_response``   the same policy as a decorator for a single Starlette endpoint

Both emit ``X-Cache: HIT|MISS`` and ``X-Cache-Key: <key>`` and fail open: any
error inside the cache layer is logged and the request is served as if no
cache existed.
"""
from __future__ import annotations

import base64
import binascii
import dataclasses
import functools
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Sequence
from urllib.parse import urlencode

from tagcache.application.cache import MISS, CacheService
from tagcache.kernel.errors import SerializationError
from tagcache.observability.logging import get_logger

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.responses import Response
    from starlette.types import ASGIApp, Message, Receive, Scope, Send

_log = get_logger(__name__)

CACHE_HEADER = "x-cache"
CACHE_KEY_HEADER = "x-cache-key"
_UNSTORED_HEADERS = frozenset({CACHE_HEADER, CACHE_KEY_HEADER})


def _require_fastapi() -> None:
    try:
        import fastapi  # noqa: F401
    except ImportError as exc:
        raise ImportError(
            "Install 'tagcache[fastapi]' to use the FastAPI adapter"
        ) from exc


# ---------------------------------------------------------------------------
# Keys and options
# ---------------------------------------------------------------------------

def default_cache_key(request: "Request", vary_by: Sequence[str] = ()) -> str:
    """``api:<path>[:<sorted query>][:<header>=<value>...]``.

    Vary values carry their lower-cased header name, so requests that send
    the same value under different headers get different keys.
    """
    key = f"api:{request.url.path}"
    query = urlencode(sorted(request.query_params.multi_items()))
    if query:
        key += f":{query}"
    varied = [(name.lower(), request.headers.get(name)) for name in vary_by]
    parts = [f"{name}={value}" for name, value in varied if value]
    if parts:
        key += ":" + ":".join(parts)
    return key


def _only_get(request: "Request") -> bool:
    return request.method != "GET"


@dataclasses.dataclass(frozen=True)
class CacheMiddlewareOptions:
    """Caching policy shared by the middleware and the decorator.

    ``skip_cache`` defaults to bypassing every method but GET.
    """

    ttl: float = 300
    tags: tuple[str, ...] = ()
    key_generator: Callable[["Request"], str] | None = None
    skip_cache: Callable[["Request"], bool] | None = None
    vary_by: tuple[str, ...] = ()

    def should_skip(self, request: "Request") -> bool:
        return (self.skip_cache or _only_get)(request)

    def key_for(self, request: "Request") -> str:
        if self.key_generator is not None:
            return self.key_generator(request)
        return default_cache_key(request, self.vary_by)


# ---------------------------------------------------------------------------
# Stored representation
# ---------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class CachedResponse:
    """``{status, headers, body}`` as kept in the cache.

    Bodies are stored as text when they are valid UTF-8, base64 otherwise,
    so the payload stays JSON-serializable for the Redis backend.
    """

    status: int
    headers: tuple[tuple[str, str], ...]
    body: bytes

    @classmethod
    def from_raw(cls, status: int, raw_headers: Sequence[tuple[bytes, bytes]], body: bytes) -> "CachedResponse":
        headers = tuple(
            (name.decode("latin-1").lower(), value.decode("latin-1"))
            for name, value in raw_headers
            if name.decode("latin-1").lower() not in _UNSTORED_HEADERS
        )
        return cls(status=status, headers=headers, body=body)

    @property
    def storable(self) -> bool:
        """Only successful responses that do not set cookies are shared."""
        return 200 <= self.status < 300 and all(name != "set-cookie" for name, _ in self.headers)

    def raw_headers(self, key: str, state: str) -> list[tuple[bytes, bytes]]:
        raw = [(name.encode("latin-1"), value.encode("latin-1")) for name, value in self.headers]
        raw.append((CACHE_HEADER.encode(), state.encode()))
        raw.append((CACHE_KEY_HEADER.encode(), key.encode()))
        return raw

    def to_payload(self) -> dict[str, Any]:
        try:
            body, encoding = self.body.decode("utf-8"), "utf-8"
        except UnicodeDecodeError:
            body, encoding = base64.b64encode(self.body).decode("ascii"), "base64"
        return {
            "status": self.status,
            "headers": [list(pair) for pair in self.headers],
            "body": body,
            "encoding": encoding,
        }

    @classmethod
    def from_payload(cls, payload: Any) -> "CachedResponse":
        try:
            encoding = payload.get("encoding", "utf-8")
            if encoding == "base64":
                body = base64.b64decode(payload["body"], validate=True)
            elif encoding == "utf-8":
                body = payload["body"].encode("utf-8")
            else:
                raise ValueError(f"unknown body encoding {encoding!r}")
            headers = tuple((str(name), str(value)) for name, value in payload["headers"])
            return cls(status=int(payload["status"]), headers=headers, body=body)
        except (AttributeError, KeyError, TypeError, ValueError, binascii.Error) as exc:
            raise SerializationError(
                "Cached response payload is malformed",
                payload_type=type(payload).__name__,
                cause=exc,
            ) from exc


class _ResponseCache:
    """Lookup / store of :class:`CachedResponse` objects through the facade."""

    def __init__(self, cache: CacheService, options: CacheMiddlewareOptions) -> None:
        self.cache = cache
        self.options = options

    async def lookup(self, key: str) -> CachedResponse | None:
        payload = await self.cache.get(key)
        if payload is MISS:
            return None
        try:
            return CachedResponse.from_payload(payload)
        except SerializationError as exc:
            _log.warning("cache_response_unreadable", key=key, **exc.log_fields())
            return None

    async def store(self, key: str, response: CachedResponse) -> None:
        if not response.storable:
            return
        try:
            await self.cache.set(key, response.to_payload(), ttl=self.options.ttl, tags=self.options.tags)
        except Exception as exc:  # noqa: BLE001 – fail open
            _log.error("cache_middleware_store_failed", key=key, error=str(exc))


def _options(
    ttl: float,
    tags: Sequence[str] | None,
    key_generator: Callable[["Request"], str] | None,
    skip_cache: Callable[["Request"], bool] | None,
    vary_by: Sequence[str] | None,
) -> CacheMiddlewareOptions:
    return CacheMiddlewareOptions(
        ttl=ttl,
        tags=tuple(tags or ()),
        key_generator=key_generator,
        skip_cache=skip_cache,
        vary_by=tuple(vary_by or ()),
    )


# ---------------------------------------------------------------------------
# ASGI middleware
# ---------------------------------------------------------------------------

class CacheMiddleware:
    """Serve GET responses from :class:`CacheService`.

    Parameters
    ----------
    app:
        The inner ASGI application.
    cache:
        The process-wide cache service.
    ttl:
        Lifetime of stored responses in seconds.
    tags:
        Tags attached to every stored response, for ``invalidate_by_tags``.
    key_generator:
        ``(Request) -> str`` replacing :func:`default_cache_key`.
    skip_cache:
        ``(Request) -> bool``; ``True`` bypasses the cache for that request.
    vary_by:
        Request header names whose values are folded into the default key.

    Usage::

        app.add_middleware(CacheMiddleware, cache=cache, ttl=600, tags=["destinations"])
    """

    def __init__(
        self,
        app: "ASGIApp",
        cache: CacheService,
        ttl: float = 300,
        tags: Sequence[str] | None = None,
        key_generator: Callable[["Request"], str] | None = None,
        skip_cache: Callable[["Request"], bool] | None = None,
        vary_by: Sequence[str] | None = None,
    ) -> None:
        _require_fastapi()
        self.app = app
        self._responses = _ResponseCache(cache, _options(ttl, tags, key_generator, skip_cache, vary_by))

    async def __call__(self, scope: "Scope", receive: "Receive", send: "Send") -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        from starlette.requests import Request

        request = Request(scope)
        options = self._responses.options
        key = ""
        hit: CachedResponse | None = None
        try:
            bypass = options.should_skip(request)
            if not bypass:
                key = options.key_for(request)
                hit = await self._responses.lookup(key)
        except Exception as exc:  # noqa: BLE001 – fail open
            _log.error("cache_middleware_error", path=scope.get("path", ""), error=str(exc))
            bypass = True

        if bypass:
            await self.app(scope, receive, send)
            return

        if hit is not None:
            await send({"type": "http.response.start", "status": hit.status, "headers": hit.raw_headers(key, "HIT")})
            await send({"type": "http.response.body", "body": hit.body})
            return

        await self._serve_miss(key, scope, receive, send)

    async def _serve_miss(self, key: str, scope: "Scope", receive: "Receive", send: "Send") -> None:
        status = 0
        raw_headers: list[tuple[bytes, bytes]] = []
        chunks: list[bytes] = []
        complete = False

        async def send_capturing(message: "Message") -> None:
            nonlocal status, raw_headers, complete
            if message["type"] == "http.response.start":
                status = message["status"]
                raw_headers = list(message.get("headers", []))
                message = {
                    **message,
                    "headers": raw_headers + [
                        (CACHE_HEADER.encode(), b"MISS"),
                        (CACHE_KEY_HEADER.encode(), key.encode()),
                    ],
                }
            elif message["type"] == "http.response.body":
                chunks.append(message.get("body", b""))
                complete = not message.get("more_body", False)
            await send(message)

        await self.app(scope, receive, send_capturing)

        if complete:
            await self._responses.store(key, CachedResponse.from_raw(status, raw_headers, b"".join(chunks)))


# ---------------------------------------------------------------------------
# Endpoint decorator
# ---------------------------------------------------------------------------

def cache_response(
    cache: CacheService,
    *,
    ttl: float = 300,
    tags: Sequence[str] | None = None,
    key_generator: Callable[["Request"], str] | None = None,
    skip_cache: Callable[["Request"], bool] | None = None,
    vary_by: Sequence[str] | None = None,
) -> Callable[[Callable[["Request"], Awaitable["Response"]]], Callable[["Request"], Awaitable["Response"]]]:
    """Wrap a Starlette endpoint ``async (request) -> Response`` with the cache.

    Streaming responses have no buffered body; they are served with
    ``X-Cache: MISS`` and never stored.
    """
    _require_fastapi()
    responses = _ResponseCache(cache, _options(ttl, tags, key_generator, skip_cache, vary_by))

    def decorator(
        handler: Callable[["Request"], Awaitable["Response"]],
    ) -> Callable[["Request"], Awaitable["Response"]]:
        @functools.wraps(handler)
        async def wrapper(request: "Request") -> "Response":
            from starlette.responses import Response

            options = responses.options
            key = ""
            hit: CachedResponse | None = None
            try:
                bypass = options.should_skip(request)
                if not bypass:
                    key = options.key_for(request)
                    hit = await responses.lookup(key)
            except Exception as exc:  # noqa: BLE001 – fail open
                _log.error("cache_middleware_error", path=request.url.path, error=str(exc))
                bypass = True

            if bypass:
                return await handler(request)

            if hit is not None:
                cached = Response(content=hit.body, status_code=hit.status)
                cached.raw_headers = hit.raw_headers(key, "HIT")
                return cached

            response = await handler(request)
            response.headers["X-Cache"] = "MISS"
            response.headers["X-Cache-Key"] = key
            body = getattr(response, "body", None)
            if not isinstance(body, bytes):
                _log.warning(
                    "cache_response_not_serializable",
                    key=key,
                    response_type=type(response).__name__,
                )
                return response
            await responses.store(key, CachedResponse.from_raw(response.status_code, response.raw_headers, body))
            return response

        return wrapper

    return decorator


__all__ = [
    "CACHE_HEADER",
    "CACHE_KEY_HEADER",
    "CacheMiddleware",
    "CacheMiddlewareOptions",
    "CachedResponse",
    "cache_response",
    "default_cache_key",
]
