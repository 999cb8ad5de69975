"""A small least-recently-used cache."""

from __future__ import annotations

import contextlib
import threading
from collections import OrderedDict
from typing import Any, Generic, Hashable, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class LRUCache(Generic[K, V]):
    """Map with bounded size that evicts the least recently used entry.

    With ``thread_safe`` set, every operation holds an internal lock.
    """

    def __init__(self, max_size: int = 64, thread_safe: bool = False) -> None:
        self.max_size = max_size
        self._entries: OrderedDict[K, V] = OrderedDict()
        self._lock: Any = threading.Lock() if thread_safe else contextlib.nullcontext()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._entries.clear()

    def put(self, key: K, value: V) -> None:
        """Store ``value`` under ``key`` and mark it most recently used."""
        with self._lock:
            if key in self._entries:
                self._entries[key] = value
                self._entries.move_to_end(key)
                return
            self._entries[key] = value
            if len(self._entries) >= self.max_size:
                self._prune()

    def get(self, key: K, default: Any = None) -> Any:
        """Return the value for ``key`` and mark it used, or ``default``."""
        with self._lock:
            if key not in self._entries:
                return default
            self._entries.move_to_end(key)
            return self._entries[key]

    def remove(self, key: K) -> bool:
        """Remove ``key``; return whether it was present."""
        with self._lock:
            if key not in self._entries:
                return False
            del self._entries[key]
            return True

    def _prune(self) -> None:
        while len(self._entries) > self.max_size:
            self._entries.popitem(last=False)