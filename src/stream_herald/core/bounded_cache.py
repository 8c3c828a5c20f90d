"""Fixed-capacity in-process cache with insertion-order eviction.

Wraps :class:`cachetools.FIFOCache`: once the cache is full, inserting a new
key evicts the *oldest inserted* entry, regardless of how recently it was
read.  Reads never reorder entries, so this is deliberately not an LRU.

Used by the Twitch client to avoid refetching category metadata, which is
effectively static.  All mutation happens on the event loop thread, so a
single insert is the only point of mutation and no lock is needed.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterator
from typing import Generic, TypeVar

from cachetools import FIFOCache  # type: ignore[import-untyped]

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class BoundedCache(Generic[K, V]):
    """Bounded key→value mapping that evicts the oldest inserted entry first.

    Args:
        capacity: Maximum number of entries.  Must be positive.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._store: FIFOCache = FIFOCache(maxsize=capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def get(self, key: K) -> V | None:
        """Return the cached value for *key*, or ``None`` on a miss."""
        return self._store.get(key)

    def get_or_insert(self, key: K, factory: Callable[[], V]) -> V:
        """Return the value for *key*, computing and inserting it only if absent.

        When two concurrent lookups for the same key both miss and both
        fetch, the first insertion wins and later callers receive the value
        that is already cached.

        Args:
            key: Cache key.
            factory: Zero-argument callable producing the value on a miss.

        Returns:
            The cached value (existing or freshly inserted).
        """
        try:
            return self._store[key]
        except KeyError:
            pass
        value = factory()
        self._store[key] = value
        return value

    def keys(self) -> list[K]:
        """Return the cached keys, oldest insertion first."""
        return list(self._store.keys())

    def __contains__(self, key: object) -> bool:
        return key in self._store

    def __len__(self) -> int:
        return len(self._store)

    def __iter__(self) -> Iterator[K]:
        return iter(self.keys())
