"""Application cache – SingleFlight (in-flight computation coalescing)."""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Generic, TypeVar

from tagcache.kernel.errors import ComputeError
from tagcache.kernel.errors import TimeoutError as AppTimeoutError

__all__ = ["SingleFlight"]

T = TypeVar("T")


class SingleFlight(Generic[T]):
    """Run at most one computation per key at a time.

    The first caller for a key starts ``fn`` in a task of its own; every
    caller, the starting one included, awaits that task through
    ``asyncio.shield``. A caller that times out or is cancelled only stops
    waiting: the computation keeps running and the others still receive
    its result or its exception. The in-flight marker is cleared when the
    task finishes, so a failed computation can be retried.
    """

    def __init__(self) -> None:
        self._calls: dict[str, asyncio.Task[T]] = {}

    def in_flight(self, key: str) -> bool:
        return key in self._calls

    def __len__(self) -> int:
        return len(self._calls)

    async def do(
        self,
        key: str,
        fn: Callable[[], Awaitable[T]],
        *,
        timeout: float | None = None,
    ) -> tuple[T, bool]:
        """Return ``(value, shared)``; ``shared`` is ``True`` for waiters.

        *timeout* bounds waiters only; the caller that starts the
        computation waits for it without a limit.
        """
        task = self._calls.get(key)
        if task is not None:
            return await self._wait(key, task, timeout), True

        task = asyncio.ensure_future(self._run(key, fn))
        self._calls[key] = task
        return await self._wait(key, task, None), False

    async def _run(self, key: str, fn: Callable[[], Awaitable[T]]) -> T:
        try:
            return await fn()
        finally:
            if self._calls.get(key) is asyncio.current_task():
                del self._calls[key]

    @staticmethod
    async def _wait(key: str, task: asyncio.Task[T], timeout: float | None) -> T:
        try:
            if timeout is None:
                return await asyncio.shield(task)
            return await asyncio.wait_for(asyncio.shield(task), timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise AppTimeoutError(
                f"Timed out after {timeout}s waiting for '{key}'",
                detail={"key": key, "timeout": timeout},
            ) from exc
        except asyncio.CancelledError:
            current = asyncio.current_task()
            # the computation itself was cancelled, not this caller
            if task.cancelled() and current is not None and not current.cancelling():
                raise ComputeError(key, f"Computation for '{key}' was cancelled") from None
            raise
