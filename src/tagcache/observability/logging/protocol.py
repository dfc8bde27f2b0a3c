"""Observability – Logger protocol."""
from __future__ import annotations

from typing import Any, Protocol


class Logger(Protocol):
    """What cache components need from a logger.

    structlog bound loggers satisfy it; events are snake_case names with
    key/value fields, e.g. ``warning("cache_operation_degraded", key=...)``.
    """

    def bind(self, **kw: Any) -> Logger: ...
    def debug(self, event: str, **kw: Any) -> Any: ...
    def info(self, event: str, **kw: Any) -> Any: ...
    def warning(self, event: str, **kw: Any) -> Any: ...
    def error(self, event: str, **kw: Any) -> Any: ...
    def exception(self, event: str, **kw: Any) -> Any: ...


__all__ = ["Logger"]
