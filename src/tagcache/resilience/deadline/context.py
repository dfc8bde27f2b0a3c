"""Resilience – per-request deadline carried in a context variable."""
from __future__ import annotations

import contextlib
from contextvars import ContextVar, Token
from typing import AsyncIterator

from tagcache.resilience.deadline.deadline import Deadline

__all__ = ["DeadlineContext"]


_current_deadline: ContextVar[Deadline | None] = ContextVar("tagcache_deadline", default=None)


class DeadlineContext:
    """Propagates the active request deadline across awaits.

    ``CacheService.get_or_set`` asks :meth:`wait_timeout` how long a caller
    may wait on another caller's in-flight computation.
    """

    @staticmethod
    def set(deadline: Deadline) -> Token[Deadline | None]:
        return _current_deadline.set(deadline)

    @staticmethod
    def get() -> Deadline | None:
        return _current_deadline.get()

    @staticmethod
    def reset(token: Token[Deadline | None]) -> None:
        _current_deadline.reset(token)

    @staticmethod
    def remaining_seconds() -> float | None:
        deadline = _current_deadline.get()
        return None if deadline is None else deadline.remaining_seconds

    @staticmethod
    def wait_timeout(explicit: float | None, fallback: float | None = None) -> float | None:
        """Resolve a wait timeout.

        An *explicit* timeout wins but never outlives the active deadline;
        without one the deadline's remaining time is used, then *fallback*.
        """
        deadline = _current_deadline.get()
        if explicit is not None:
            return explicit if deadline is None else deadline.clamp(explicit)
        if deadline is not None:
            return deadline.remaining_seconds
        return fallback

    @staticmethod
    @contextlib.asynccontextmanager
    async def scoped(deadline: Deadline) -> AsyncIterator[Deadline]:
        token = _current_deadline.set(deadline)
        try:
            yield deadline
        finally:
            _current_deadline.reset(token)
