"""Testing fakes – FakeClock."""
from __future__ import annotations

from datetime import UTC, datetime

from tagcache.kernel.time import FrozenClock

EPOCH = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


class FakeClock(FrozenClock):
    """Manually driven clock for expiry tests.

    Starts at *start* (2026-01-01 12:00 UTC by default) and only moves when
    told to::

        clock = FakeClock()
        store = InMemoryEntryStore(clock=clock)
        await store.set("k", 1, ttl=10)
        clock.advance(seconds=10)   # "k" is now expired
    """

    def __init__(self, start: datetime = EPOCH) -> None:
        super().__init__(start)

    def move_to(self, when: datetime) -> None:
        """Jump to an absolute time; may go backwards."""
        self._ts = when.timestamp()


__all__ = ["EPOCH", "FakeClock"]
