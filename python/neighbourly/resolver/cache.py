"""In-process TTL cache for resolved queries, keyed by normalized query."""

from __future__ import annotations

import threading
import time
from typing import Callable, Generic, Hashable, Optional, TypeVar

V = TypeVar("V")


CacheKey = tuple[str, Optional[str], Optional[int]]


def cache_key(
    query: str, declared: Optional[str] = None, candidate_index: Optional[int] = None
) -> CacheKey:
    """Primary and candidate resolutions of one query never share a key."""
    return " ".join(query.lower().split()), declared, candidate_index


class TTLCache(Generic[V]):
    """Thread-safe mapping whose entries expire ``ttl_seconds`` after insertion.

    Expiry is checked on every read, so an expired entry is never returned.
    """

    def __init__(
        self,
        ttl_seconds: float,
        *,
        max_entries: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[Hashable, tuple[float, V]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[V]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: Hashable, value: V) -> None:
        with self._lock:
            now = self._clock()
            if len(self._entries) >= self.max_entries:
                self._purge(now)
            if len(self._entries) >= self.max_entries:
                # Still full: drop the oldest insertion.
                self._entries.pop(next(iter(self._entries)))
            self._entries[key] = (now + self.ttl_seconds, value)

    def purge_expired(self) -> int:
        with self._lock:
            return self._purge(self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _purge(self, now: float) -> int:
        expired = [k for k, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)
