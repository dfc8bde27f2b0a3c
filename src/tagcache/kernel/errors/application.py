"""Application-layer errors – failures surfaced to cache callers."""

from __future__ import annotations

from typing import Any

from tagcache.kernel.errors.base import BaseError


class ApplicationError(BaseError):
    """Cross-cutting application-layer concern."""

    default_code = "application_error"


class ComputeError(ApplicationError):
    """The caller-supplied compute function of ``get_or_set`` failed.

    Raised to the leader and to every waiter sharing the same in-flight
    computation. The original exception is available as ``cause`` /
    ``__cause__``.
    """

    default_code = "compute_error"

    def __init__(
        self,
        key: str,
        message: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message or f"Computing cache value for '{key}' failed", **kwargs)
        self.key = key


class TimeoutError(ApplicationError):  # noqa: A001
    """Waiting for an in-flight computation exceeded the caller's deadline."""

    default_code = "timeout"


__all__ = [
    "ApplicationError",
    "ComputeError",
    "TimeoutError",
]
