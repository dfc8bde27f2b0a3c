"""Resilience – request Deadline on the monotonic clock."""
from __future__ import annotations

import dataclasses
import time

from tagcache.kernel.errors import TimeoutError as AppTimeoutError


@dataclasses.dataclass(frozen=True)
class Deadline:
    """Point on ``time.monotonic()`` after which a request gives up waiting.

    Wall-clock adjustments do not move it.
    """

    expires_at: float

    @classmethod
    def after(cls, seconds: float) -> Deadline:
        return cls(expires_at=time.monotonic() + seconds)

    @property
    def remaining_seconds(self) -> float:
        return max(0.0, self.expires_at - time.monotonic())

    @property
    def is_expired(self) -> bool:
        return time.monotonic() >= self.expires_at

    def clamp(self, timeout: float | None) -> float:
        """Return *timeout* shortened to what is left of this deadline."""
        remaining = self.remaining_seconds
        return remaining if timeout is None else min(timeout, remaining)

    def raise_if_expired(self, operation: str = "request") -> None:
        if self.is_expired:
            raise AppTimeoutError(
                f"Deadline exceeded during {operation}",
                detail={"operation": operation},
            )


__all__ = ["Deadline"]
