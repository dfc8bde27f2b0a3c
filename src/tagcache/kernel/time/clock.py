"""Kernel time – clocks that entry expiry is measured against.

Stores compare ``Clock.timestamp()`` (POSIX seconds) with each entry's
``expires_at``; ``now()`` is the same instant as an aware UTC datetime.
"""
from __future__ import annotations

import time
from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Source of the current instant used for TTL arithmetic."""

    def now(self) -> datetime: ...
    def timestamp(self) -> float: ...


class SystemClock:
    """Wall clock backed by ``time.time()``."""

    def now(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp(), UTC)

    def timestamp(self) -> float:
        return time.time()


class FrozenClock:
    """Clock that stands still until :meth:`advance` is called.

    Lets tests step entries across their expiry boundary to the exact second.
    """

    def __init__(self, instant: datetime) -> None:
        self._ts = instant.timestamp()

    def now(self) -> datetime:
        return datetime.fromtimestamp(self._ts, UTC)

    def timestamp(self) -> float:
        return self._ts

    def advance(self, **delta: float) -> None:
        """Move forward by ``timedelta(**delta)``, e.g. ``advance(seconds=30)``."""
        self._ts += timedelta(**delta).total_seconds()


__all__ = ["Clock", "FrozenClock", "SystemClock"]
