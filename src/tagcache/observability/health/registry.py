from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

from tagcache.observability.health.check import HealthCheck, HealthStatus
from tagcache.observability.logging import get_logger

__all__ = ["HealthReport", "HealthRegistry"]

_log = get_logger(__name__)


@dataclass
class HealthReport:
    results: dict[str, HealthStatus] = field(default_factory=dict)

    @property
    def overall(self) -> bool:
        return all(s.healthy for s in self.results.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "healthy": self.overall,
            "checks": {name: status.to_dict() for name, status in self.results.items()},
        }


class HealthRegistry:
    """Runs the registered checks concurrently, each bounded by *timeout* seconds.

    A check that raises or overruns is reported unhealthy; it never fails the
    whole report, so a hung backend still yields a 503 instead of a hung probe.
    """

    def __init__(self, timeout: float = 2.0) -> None:
        self._checks: list[HealthCheck] = []
        self._timeout = timeout

    def register(self, check: HealthCheck) -> None:
        self._checks.append(check)

    async def run_all(self) -> HealthReport:
        statuses = await asyncio.gather(*(self._run(check) for check in self._checks))
        return HealthReport(results={check.name: status for check, status in zip(self._checks, statuses)})

    async def _run(self, check: HealthCheck) -> HealthStatus:
        try:
            return await asyncio.wait_for(check.timed_check(), timeout=self._timeout)
        except asyncio.TimeoutError:
            _log.warning("health_check_timed_out", check=check.name, timeout=self._timeout)
            return HealthStatus(healthy=False, detail=f"timed out after {self._timeout}s")
        except Exception as exc:  # noqa: BLE001
            _log.warning("health_check_failed", check=check.name, error=str(exc))
            return HealthStatus(healthy=False, detail=f"exception: {exc}")
