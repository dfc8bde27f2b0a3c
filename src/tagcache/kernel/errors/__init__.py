"""Kernel error hierarchy – public re-export surface.

Hierarchy::

    BaseError
    ├── ApplicationError               (application.py)
    │   ├── ComputeError
    │   └── TimeoutError
    └── InfrastructureError            (infrastructure.py)
        ├── BackingStoreUnavailableError
        └── SerializationError
"""

from tagcache.kernel.errors.application import (
    ApplicationError,
    ComputeError,
    TimeoutError,
)
from tagcache.kernel.errors.base import BaseError
from tagcache.kernel.errors.infrastructure import (
    BackingStoreUnavailableError,
    InfrastructureError,
    SerializationError,
)

__all__ = [
    "ApplicationError",
    "BackingStoreUnavailableError",
    "BaseError",
    "ComputeError",
    "InfrastructureError",
    "SerializationError",
    "TimeoutError",
]
