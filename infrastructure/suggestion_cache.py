# infrastructure/suggestion_cache.py
"""Bounded in-memory cache for query suggestions (LRU + TTL)"""
import sys
import time
from collections import OrderedDict
from typing import Any, Callable, Hashable, Optional, Tuple


def _approx_size(value: Any) -> int:
    """Rough byte size of a cached value (strings and lists of strings)."""
    if isinstance(value, str):
        return sys.getsizeof(value)
    if isinstance(value, (list, tuple)):
        return sys.getsizeof(value) + sum(_approx_size(v) for v in value)
    if isinstance(value, dict):
        return sys.getsizeof(value) + sum(_approx_size(k) + _approx_size(v) for k, v in value.items())
    return sys.getsizeof(value)


class SuggestionCache:
    """
    Process-wide suggestion cache.

    Bounded by entry count and by an approximate memory budget. Entries
    expire after `ttl_seconds`; expired entries are dropped on read and
    swept on every insert. When a bound is exceeded the least recently
    used entries go first. Lost on server restart.
    """

    def __init__(
        self,
        ttl_seconds: float = 300,
        max_entries: int = 500,
        max_bytes: int = 2 * 1024 * 1024,
        clock: Callable[[], float] = time.monotonic
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.max_bytes = max_bytes
        self._clock = clock
        # key -> (expires_at, size, value)
        self._entries: "OrderedDict[Hashable, Tuple[float, int, Any]]" = OrderedDict()
        self._bytes = 0

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def size_bytes(self) -> int:
        return self._bytes

    def _drop(self, key: Hashable) -> None:
        _, size, _ = self._entries.pop(key)
        self._bytes -= size

    def _sweep_expired(self) -> None:
        now = self._clock()
        for key in [k for k, (expires, _, _) in self._entries.items() if expires <= now]:
            self._drop(key)

    def get(self, key: Hashable) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry[0] <= self._clock():
            self._drop(key)
            return None
        self._entries.move_to_end(key)
        return entry[2]

    def set(self, key: Hashable, value: Any) -> None:
        size = _approx_size(value)
        if size > self.max_bytes:
            # Would evict everything and still not fit
            return

        if key in self._entries:
            self._drop(key)
        self._sweep_expired()

        self._entries[key] = (self._clock() + self.ttl_seconds, size, value)
        self._bytes += size

        while len(self._entries) > self.max_entries or self._bytes > self.max_bytes:
            oldest = next(iter(self._entries))
            self._drop(oldest)

    def clear(self) -> None:
        self._entries.clear()
        self._bytes = 0
