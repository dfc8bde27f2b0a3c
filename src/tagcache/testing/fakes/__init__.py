"""Testing fakes."""
from tagcache.testing.fakes.clock import FakeClock

__all__ = ["FakeClock"]
