"""Resilience – Deadline and its context variable."""
from tagcache.resilience.deadline.context import DeadlineContext
from tagcache.resilience.deadline.deadline import Deadline

__all__ = ["Deadline", "DeadlineContext"]
