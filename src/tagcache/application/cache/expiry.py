"""Application cache – ExpirySweeper (periodic purge of expired entries)."""
from __future__ import annotations

import asyncio

from tagcache.application.cache.store import EntryStore
from tagcache.observability.logging import get_logger

__all__ = ["ExpirySweeper"]

_log = get_logger(__name__)


class ExpirySweeper:
    """Background task calling ``store.purge_expired()`` every *interval* seconds.

    Lazy expiry on read already hides expired entries; the sweep reclaims
    memory held by keys that are written once and never read again.

    Typical usage::

        sweeper = ExpirySweeper(store, interval=60.0)
        await sweeper.start()
        ...
        await sweeper.stop()
    """

    def __init__(self, store: EntryStore, interval: float = 60.0) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._store = store
        self._interval = interval
        self._task: asyncio.Task[None] | None = None
        self.last_purged = 0

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the sweep loop on the running event loop. Idempotent."""
        if self.is_running:
            return
        self._task = asyncio.ensure_future(self._run())

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to exit."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def sweep_once(self) -> int:
        """Run one purge pass; failures are logged, never raised."""
        try:
            purged = await self._store.purge_expired()
        except Exception as exc:  # noqa: BLE001
            _log.warning("cache_sweep_failed", backend=self._store.name, error=str(exc))
            return 0
        self.last_purged = purged
        if purged:
            _log.debug("cache_sweep_purged", backend=self._store.name, purged=purged)
        return purged

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            await self.sweep_once()
