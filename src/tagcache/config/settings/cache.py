"""Config settings – CacheSettings."""
from __future__ import annotations

import dataclasses
from typing import ClassVar

from tagcache.config.settings.base import Settings
from tagcache.config.validation import InvalidSettingValueError

BACKENDS = ("memory", "redis")


@dataclasses.dataclass
class CacheSettings(Settings):
    """Cache configuration, read from ``CACHE_*`` environment variables.

    ``CACHE_DEFAULT_TTL``      seconds an entry lives when the caller gives no ttl
    ``CACHE_KEY_PREFIX``       namespace prepended to every key
    ``CACHE_SWEEP_INTERVAL``   seconds between background expiry sweeps
    ``CACHE_STRIPES``          lock stripes of the in-memory store
    ``CACHE_BACKEND``          ``memory`` or ``redis``
    ``CACHE_REDIS_URL``        connection URL when ``CACHE_BACKEND=redis``
    ``CACHE_WAIT_TIMEOUT``     max seconds a get_or_set waiter blocks (unset: unbounded)
    """

    _prefix: ClassVar[str] = "CACHE"

    default_ttl: int = 300
    key_prefix: str = "cache:"
    sweep_interval: float = 60.0
    stripes: int = 16
    backend: str = "memory"
    redis_url: str = "redis://localhost:6379/0"
    wait_timeout: float | None = None

    def _validate(self) -> None:
        if self.default_ttl <= 0:
            raise InvalidSettingValueError("default_ttl", self.default_ttl, "must be positive")
        if self.sweep_interval <= 0:
            raise InvalidSettingValueError("sweep_interval", self.sweep_interval, "must be positive")
        if self.stripes <= 0:
            raise InvalidSettingValueError("stripes", self.stripes, "must be positive")
        if self.backend not in BACKENDS:
            raise InvalidSettingValueError(
                "backend", self.backend, f"expected one of {', '.join(BACKENDS)}"
            )
        if self.backend == "redis" and not self.key_prefix:
            raise InvalidSettingValueError(
                "key_prefix", self.key_prefix, "must be non-empty with the redis backend"
            )
        if self.wait_timeout is not None and self.wait_timeout <= 0:
            raise InvalidSettingValueError("wait_timeout", self.wait_timeout, "must be positive")


__all__ = ["CacheSettings"]
