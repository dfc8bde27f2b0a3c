"""Testing helpers for code that depends on tagcache."""
from tagcache.testing.fakes import FakeClock

__all__ = ["FakeClock"]
