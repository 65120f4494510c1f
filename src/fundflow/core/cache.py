#!/usr/bin/env python3
"""
Time-based cache for lookups against the document store.

Owned by whichever component composes the data layer (see
services.users.UserDirectory); there is no module-level cache.
"""

import time
from dataclasses import dataclass
from typing import Callable, Generic, Hashable, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass
class _Entry(Generic[V]):
    value: V
    stored_at: float


class TTLCache(Generic[K, V]):
    """
    Key/value cache whose entries expire a fixed time after they are stored.

    Args:
        ttl_seconds: Entry lifetime
        clock: Monotonic time source (injectable for tests)
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[K, _Entry[V]] = {}

    def is_expired(self, key: K) -> bool:
        """True when the key is absent or older than the TTL."""
        entry = self._entries.get(key)
        if entry is None:
            return True
        return self._clock() - entry.stored_at >= self.ttl_seconds

    def get(self, key: K) -> V | None:
        """Return the cached value, or None if missing or expired."""
        if self.is_expired(key):
            self._entries.pop(key, None)
            return None
        return self._entries[key].value

    def put(self, key: K, value: V) -> None:
        self._entries[key] = _Entry(value=value, stored_at=self._clock())

    def invalidate(self, key: K | None = None) -> None:
        """Drop one key, or everything when key is None."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._entries and not self.is_expired(key)  # type: ignore[arg-type]

    def __len__(self) -> int:
        return sum(1 for key in list(self._entries) if not self.is_expired(key))
