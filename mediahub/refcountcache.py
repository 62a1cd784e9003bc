"""A thread-safe cache of shared objects kept alive by reference counts."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Generic, Hashable, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass
class _Entry(Generic[V]):
    count: int
    value: V


class RefCountCache(Generic[K, V]):
    """Hands out one shared object per key, built by ``factory(key)`` on first use."""

    def __init__(self, factory: Callable[[K], V]) -> None:
        self._factory = factory
        self._lock = threading.Lock()
        self._entries: dict[K, _Entry[V]] = {}

    def ref(self, key: K) -> V:
        """Return the object for ``key``, creating it if needed, and count the reference."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                value = self._factory(key)
                self._entries[key] = _Entry(1, value)
                return value
            entry.count += 1
            return entry.value

    def unref(self, key: K) -> bool:
        """Drop one reference; the object is discarded with its last reference.

        Returns ``False`` when ``key`` is not cached.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if entry.count > 1:
                entry.count -= 1
            else:
                del self._entries[key]
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries