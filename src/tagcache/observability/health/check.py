from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

__all__ = ["HealthCheck", "HealthStatus"]


@dataclass
class HealthStatus:
    """Outcome of one probe; ``data`` carries check-specific fields (backend, hit rate)."""

    healthy: bool
    detail: str | None = None
    latency_ms: float = 0.0
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "healthy": self.healthy,
            "detail": self.detail,
            "latency_ms": round(self.latency_ms, 2),
            **self.data,
        }


class HealthCheck(ABC):
    """A named async probe of one dependency."""

    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    async def check(self) -> HealthStatus: ...

    async def timed_check(self) -> HealthStatus:
        started = time.perf_counter()
        status = await self.check()
        status.latency_ms = (time.perf_counter() - started) * 1000
        return status
