"""Unit tests for deadline propagation."""
import asyncio
import time

import pytest

from tagcache.kernel.errors import TimeoutError as AppTimeoutError
from tagcache.resilience.deadline import Deadline, DeadlineContext


class TestDeadline:
    def test_after_has_remaining_time(self):
        dl = Deadline.after(seconds=30)
        assert 29 < dl.remaining_seconds <= 30
        assert dl.is_expired is False
        dl.raise_if_expired()

    def test_expired_deadline(self):
        dl = Deadline(expires_at=time.monotonic() - 1)
        assert dl.remaining_seconds == 0.0
        assert dl.is_expired
        with pytest.raises(AppTimeoutError) as exc_info:
            dl.raise_if_expired("get_or_set")
        assert exc_info.value.detail == {"operation": "get_or_set"}

    def test_clamp(self):
        dl = Deadline.after(seconds=5)
        assert dl.clamp(1.0) == 1.0
        assert 4 < dl.clamp(60.0) <= 5
        assert 4 < dl.clamp(None) <= 5


class TestDeadlineContext:
    def test_set_and_get(self):
        dl = Deadline.after(seconds=5)
        token = DeadlineContext.set(dl)
        try:
            assert DeadlineContext.get() is dl
            assert DeadlineContext.remaining_seconds() <= 5
        finally:
            DeadlineContext.reset(token)

    def test_unset_remaining_is_none(self):
        async def run():
            return DeadlineContext.get(), DeadlineContext.remaining_seconds()

        assert asyncio.run(run()) == (None, None)

    def test_scoped_set_and_clear(self):
        async def run():
            dl = Deadline.after(seconds=10)
            async with DeadlineContext.scoped(dl) as d:
                assert DeadlineContext.get() is dl
                assert d is dl
            return DeadlineContext.get()

        assert asyncio.run(run()) is None


class TestWaitTimeout:
    def test_without_deadline(self):
        async def run():
            return (
                DeadlineContext.wait_timeout(2.0, 9.0),
                DeadlineContext.wait_timeout(None, 9.0),
                DeadlineContext.wait_timeout(None),
            )

        assert asyncio.run(run()) == (2.0, 9.0, None)

    def test_deadline_caps_explicit_timeout(self):
        async def run():
            async with DeadlineContext.scoped(Deadline.after(0.5)):
                return DeadlineContext.wait_timeout(30.0, 9.0), DeadlineContext.wait_timeout(0.1, 9.0)

        capped, shorter = asyncio.run(run())
        assert capped <= 0.5
        assert shorter == 0.1

    def test_deadline_replaces_fallback(self):
        async def run():
            async with DeadlineContext.scoped(Deadline.after(0.5)):
                return DeadlineContext.wait_timeout(None, 9.0)

        assert asyncio.run(run()) <= 0.5
