"""Infrastructure errors – backing store and payload failures."""

from __future__ import annotations

from typing import Any

from tagcache.kernel.errors.base import BaseError


class InfrastructureError(BaseError):
    """Infrastructure / I/O failure internal to the cache layer."""

    default_code = "infrastructure_error"


class BackingStoreUnavailableError(InfrastructureError):
    """The storage holding cache entries could not be reached."""

    default_code = "backing_store_unavailable"

    def __init__(
        self,
        backend: str,
        message: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message or f"Cache backend '{backend}' is unavailable", **kwargs)
        self.backend = backend


class SerializationError(InfrastructureError):
    """Failed to serialize or deserialize a cached payload."""

    default_code = "serialization_error"

    def __init__(
        self,
        message: str,
        *,
        payload_type: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.payload_type = payload_type


__all__ = [
    "BackingStoreUnavailableError",
    "InfrastructureError",
    "SerializationError",
]
