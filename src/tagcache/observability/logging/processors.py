"""Observability – structlog processors for cache events and get_logger."""
from __future__ import annotations

from typing import Any

import structlog


class ServiceNameProcessor:
    """Stamp every event with the emitting service's name."""

    def __init__(self, service: str) -> None:
        self._service = service

    def __call__(
        self,
        logger: Any,           # noqa: ARG002
        method_name: str,      # noqa: ARG002
        event_dict: dict[str, Any],
    ) -> dict[str, Any]:
        event_dict.setdefault("service", self._service)
        return event_dict


class CacheKeyTruncator:
    """Shorten oversized ``key`` / ``keys`` fields.

    Middleware keys embed the request path, query string and vary headers,
    so they can grow without bound. The full length is kept as
    ``key_length``.
    """

    def __init__(self, max_length: int = 200) -> None:
        self._max = max_length

    def _cut(self, key: Any) -> Any:
        if isinstance(key, str) and len(key) > self._max:
            return key[: self._max] + "..."
        return key

    def __call__(
        self,
        logger: Any,           # noqa: ARG002
        method_name: str,      # noqa: ARG002
        event_dict: dict[str, Any],
    ) -> dict[str, Any]:
        key = event_dict.get("key")
        if isinstance(key, str) and len(key) > self._max:
            event_dict["key_length"] = len(key)
            event_dict["key"] = self._cut(key)
        keys = event_dict.get("keys")
        if isinstance(keys, (list, tuple)):
            event_dict["keys"] = [self._cut(k) for k in keys]
        return event_dict


def get_logger(name: str | None = None, **initial_values: Any) -> Any:
    """Return a structlog logger for *name*, with *initial_values* bound."""
    logger = structlog.get_logger(name)
    if initial_values:
        logger = logger.bind(**initial_values)
    return logger


__all__ = ["CacheKeyTruncator", "ServiceNameProcessor", "get_logger"]
