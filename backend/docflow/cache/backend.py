"""Cache backend interface.

Backends store serialized values (strings) under keys with a TTL and
register each key against a set of tags. Invalidating a tag deletes every
key registered under it and then the tag's own registration. Entries are
never partially updated.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Sequence


class CacheBackendError(Exception):
    """A backend could not complete an operation (e.g. Redis unreachable)."""


@dataclass(frozen=True)
class CacheEntry:
    """One cached projection.

    Attributes:
        key: Cache key (without backend prefix)
        value: Serialized value
        expires_at: Monotonic instant after which the entry is dead
        tags: Tags the key is registered under
    """
    key: str
    value: str
    expires_at: float
    tags: FrozenSet[str] = field(default_factory=frozenset)

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class CacheBackend(ABC):
    """Key/value store with TTLs and tag invalidation."""

    name: str = "cache"

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the live value for key, or None."""

    @abstractmethod
    def set(self, key: str, value: str, ttl: int, tags: Sequence[str] = ()) -> None:
        """Store value under key for ttl seconds and register it under tags."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove one key. Returns True if it existed."""

    @abstractmethod
    def invalidate_tag(self, tag: str) -> int:
        """Delete every key registered under tag, then the tag itself.

        Returns:
            Number of keys removed (0 for an unknown tag)
        """

    @abstractmethod
    def clear(self) -> int:
        """Remove every entry. Returns the number of keys removed."""

    @abstractmethod
    def ping(self) -> bool:
        """True if the backend is reachable."""

    def size(self) -> Optional[int]:
        """Number of live entries, None if the backend cannot tell cheaply."""
        return None
