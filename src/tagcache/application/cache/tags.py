"""Application cache – TagIndex (tag -> keys reverse mapping)."""
from __future__ import annotations

import threading
from collections.abc import Iterable

__all__ = ["TagIndex"]


class TagIndex:
    """Reverse mapping from tag to the keys currently carrying it.

    The entry store is the owner of consistency: it calls :meth:`add`,
    :meth:`discard` and :meth:`replace` while holding the stripe lock of the
    key being written. The index has its own short lock for the dict updates;
    it is never held while a stripe lock is being acquired.
    """

    def __init__(self) -> None:
        self._keys: dict[str, set[str]] = {}
        self._lock = threading.Lock()

    def add(self, key: str, tags: Iterable[str]) -> None:
        with self._lock:
            for tag in tags:
                self._keys.setdefault(tag, set()).add(key)

    def discard(self, key: str, tags: Iterable[str]) -> None:
        with self._lock:
            self._discard_locked(key, tags)

    def replace(self, key: str, old: frozenset[str], new: frozenset[str]) -> None:
        """Move *key* from its *old* tag set to *new* in one step."""
        with self._lock:
            self._discard_locked(key, old - new)
            for tag in new - old:
                self._keys.setdefault(tag, set()).add(key)

    def keys_for_tag(self, tag: str) -> set[str]:
        with self._lock:
            return set(self._keys.get(tag, ()))

    def keys_for(self, tags: Iterable[str]) -> set[str]:
        """Union of the keys under any of *tags* (a snapshot)."""
        with self._lock:
            keys: set[str] = set()
            for tag in tags:
                keys |= self._keys.get(tag, set())
            return keys

    def tags(self) -> set[str]:
        with self._lock:
            return set(self._keys)

    def clear(self) -> None:
        with self._lock:
            self._keys.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)

    def _discard_locked(self, key: str, tags: Iterable[str]) -> None:
        for tag in tags:
            keys = self._keys.get(tag)
            if keys is None:
                continue
            keys.discard(key)
            if not keys:
                del self._keys[tag]
