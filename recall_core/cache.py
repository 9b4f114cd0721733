"""
Bounded TTL cache.

Owned by the caller and injected where needed; nothing in the package keeps
a process-wide cache.
"""

from __future__ import annotations

import time
from typing import Callable, Generic, Hashable, Optional, TypeVar

from recall_core.errors import InvalidInputError

V = TypeVar("V")


class TtlCache(Generic[V]):
    """
    Key/value cache with time-based expiry and a size bound.

    When full, inserting a new key evicts the oldest inserted entry.

    Args:
        ttl_seconds: Lifetime of an entry
        max_entries: Maximum number of live entries
        clock: Returns the current time in seconds (monotonic by default)
    """

    def __init__(
        self,
        ttl_seconds: float = 30.0,
        max_entries: int = 5000,
        clock: Callable[[], float] = time.monotonic
    ):
        if ttl_seconds <= 0:
            raise InvalidInputError(f"ttl_seconds must be positive, got {ttl_seconds}")
        if max_entries < 1:
            raise InvalidInputError(f"max_entries must be at least 1, got {max_entries}")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[Hashable, tuple[V, float]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: Hashable) -> Optional[V]:
        """Cached value, or None if absent or expired (expired entries are dropped)."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= self._clock():
            del self._entries[key]
            return None
        return value

    def set(self, key: Hashable, value: V) -> None:
        if key not in self._entries and len(self._entries) >= self.max_entries:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
        self._entries[key] = (value, self._clock() + self.ttl_seconds)

    def clear(self) -> None:
        self._entries.clear()
