"""Application cache – CacheEntry, CacheOptions, WarmUpItem and the MISS sentinel."""
from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping
from typing import Any, Final

__all__ = [
    "CacheEntry",
    "CacheOptions",
    "MISS",
    "WarmUpItem",
]


class _Miss:
    """Type of :data:`MISS`; a single falsy instance."""

    _instance: _Miss | None = None

    def __new__(cls) -> _Miss:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "<MISS>"

    def __reduce__(self) -> str:
        return "MISS"


MISS: Final = _Miss()
"""Returned by ``CacheService.get`` when no live entry exists.

``None`` is a legitimate cached value, so lookups compare with ``is MISS``.
"""


@dataclasses.dataclass(frozen=True)
class CacheEntry:
    """One cached value. Immutable: a ``set`` swaps in a new entry."""

    key: str
    value: Any
    created_at: float
    expires_at: float
    tags: frozenset[str] = frozenset()

    @classmethod
    def create(
        cls,
        key: str,
        value: Any,
        ttl: float,
        tags: Iterable[str] = (),
        *,
        now: float,
    ) -> CacheEntry:
        return cls(key=key, value=value, created_at=now, expires_at=now + ttl, tags=frozenset(tags))

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

    def ttl_remaining(self, now: float) -> float:
        return max(0.0, self.expires_at - now)


@dataclasses.dataclass(frozen=True)
class CacheOptions:
    """Per-write options. ``ttl=None`` means the service default."""

    ttl: float | None = None
    tags: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.ttl is not None and (isinstance(self.ttl, bool) or self.ttl <= 0):
            raise ValueError(f"ttl must be a positive number, got {self.ttl!r}")
        if isinstance(self.tags, str):
            raise TypeError("tags must be a sequence of strings, not a string")
        tags = tuple(self.tags)
        for tag in tags:
            if not isinstance(tag, str) or not tag:
                raise ValueError(f"tags must be non-empty strings, got {tag!r}")
        object.__setattr__(self, "tags", tags)

    @classmethod
    def coerce(cls, options: CacheOptions | Mapping[str, Any] | None) -> CacheOptions:
        """Accept ``CacheOptions``, a ``{"ttl": ..., "tags": [...]}`` mapping or ``None``."""
        if options is None:
            return cls()
        if isinstance(options, CacheOptions):
            return options
        if isinstance(options, Mapping):
            unknown = set(options) - {"ttl", "tags"}
            if unknown:
                raise ValueError(f"unknown cache options: {', '.join(sorted(unknown))}")
            return cls(ttl=options.get("ttl"), tags=tuple(options.get("tags") or ()))
        raise TypeError(f"cannot interpret {type(options).__name__} as CacheOptions")

    def merged(self, ttl: float | None = None, tags: Iterable[str] | None = None) -> CacheOptions:
        """Return a copy with keyword overrides applied."""
        if ttl is None and tags is None:
            return self
        return CacheOptions(
            ttl=self.ttl if ttl is None else ttl,
            tags=self.tags if tags is None else tuple(tags),
        )


@dataclasses.dataclass(frozen=True)
class WarmUpItem:
    """One entry to pre-populate through ``CacheService.warm_up``."""

    key: str
    value: Any
    options: CacheOptions = CacheOptions()

    def __post_init__(self) -> None:
        if not isinstance(self.key, str) or not self.key:
            raise ValueError(f"warm-up key must be a non-empty string, got {self.key!r}")

    @classmethod
    def coerce(cls, item: WarmUpItem | Mapping[str, Any]) -> WarmUpItem:
        if isinstance(item, WarmUpItem):
            return item
        if not isinstance(item, Mapping):
            raise TypeError(f"warm-up item must be a mapping, got {type(item).__name__}")
        if "key" not in item or "value" not in item:
            raise ValueError("warm-up item needs both 'key' and 'value'")
        return cls(
            key=item["key"],
            value=item["value"],
            options=CacheOptions.coerce(item.get("options")),
        )
