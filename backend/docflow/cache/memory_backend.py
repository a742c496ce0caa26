"""In-process cache backend.

Used as the fallback when Redis is unreachable and as the test backend.
Expiry is driven by the injected Clock; expired entries are removed on
access and by a periodic sweep.
"""

import threading
from typing import Dict, Optional, Sequence, Set

from ..domain.clock import Clock, SystemClock
from .backend import CacheBackend, CacheEntry


class InMemoryCacheBackend(CacheBackend):
    """Thread-safe dict-backed cache with tag sets."""

    name = "memory"

    def __init__(self, clock: Optional[Clock] = None, cleanup_interval: int = 300):
        self._clock = clock or SystemClock()
        self._cleanup_interval = cleanup_interval
        self._entries: Dict[str, CacheEntry] = {}
        self._tags: Dict[str, Set[str]] = {}
        self._lock = threading.RLock()
        self._next_cleanup = self._clock.monotonic() + cleanup_interval

    def get(self, key: str) -> Optional[str]:
        now = self._clock.monotonic()
        with self._lock:
            self._maybe_cleanup(now)
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(now):
                self._remove(key)
                return None
            return entry.value

    def set(self, key: str, value: str, ttl: int, tags: Sequence[str] = ()) -> None:
        now = self._clock.monotonic()
        with self._lock:
            self._maybe_cleanup(now)
            if key in self._entries:
                self._remove(key)
            self._entries[key] = CacheEntry(
                key=key,
                value=value,
                expires_at=now + ttl,
                tags=frozenset(tags),
            )
            for tag in tags:
                self._tags.setdefault(tag, set()).add(key)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._remove(key)

    def invalidate_tag(self, tag: str) -> int:
        with self._lock:
            keys = self._tags.pop(tag, set())
            removed = 0
            for key in keys:
                if self._remove(key):
                    removed += 1
            return removed

    def clear(self) -> int:
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
            self._tags.clear()
            return removed

    def ping(self) -> bool:
        return True

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def cleanup_expired(self) -> int:
        """Remove expired entries. Returns the number removed."""
        now = self._clock.monotonic()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                self._remove(key)
            self._next_cleanup = now + self._cleanup_interval
            return len(expired)

    def _maybe_cleanup(self, now: float) -> None:
        if now >= self._next_cleanup:
            self.cleanup_expired()

    def _remove(self, key: str) -> bool:
        # Caller holds the lock
        entry = self._entries.pop(key, None)
        if entry is None:
            return False
        for tag in entry.tags:
            members = self._tags.get(tag)
            if members is not None:
                members.discard(key)
                if not members:
                    del self._tags[tag]
        return True
