"""Explicit time-to-live cache."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Hashable


@dataclass
class _Entry[V]:
    value: V
    stored_at: float


@dataclass
class TTLCache[K: Hashable, V]:
    """Key -> value cache with per-entry timestamps and explicit eviction.

    Instances are injected where needed; nothing in the package keeps a module-level cache.
    """

    ttl_seconds: float
    max_entries: int = 256
    clock: Callable[[], float] = time.monotonic
    _entries: dict[K, _Entry[V]] = field(default_factory=dict, init=False, repr=False)

    def get(self, key: K) -> V | None:
        """Return a fresh cached value or None.

        Args:
            key (K): Cache key.

        Returns:
            V | None: Cached value when present and not expired.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._is_expired(entry):
            del self._entries[key]
            return None
        return entry.value

    def put(self, key: K, value: V) -> None:
        """Store a value, evicting expired and then oldest entries when full.

        Args:
            key (K): Cache key.
            value (V): Value to cache.
        """
        self._entries.pop(key, None)
        if len(self._entries) >= self.max_entries:
            self.evict_expired()
        while len(self._entries) >= self.max_entries:
            oldest = min(self._entries, key=lambda candidate: self._entries[candidate].stored_at)
            del self._entries[oldest]
        self._entries[key] = _Entry(value=value, stored_at=self.clock())

    def invalidate(self, key: K) -> None:
        """Drop one entry if present."""
        self._entries.pop(key, None)

    def evict_expired(self) -> int:
        """Drop every expired entry.

        Returns:
            int: Number of evicted entries.
        """
        expired = [key for key, entry in self._entries.items() if self._is_expired(entry)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)

    def _is_expired(self, entry: _Entry[V]) -> bool:
        return self.clock() - entry.stored_at >= self.ttl_seconds
