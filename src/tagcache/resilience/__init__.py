"""Resilience – request deadlines propagated to cache waits."""
from tagcache.resilience.deadline import Deadline, DeadlineContext

__all__ = ["Deadline", "DeadlineContext"]
