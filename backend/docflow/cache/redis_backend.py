"""Redis cache backend.

Keys are stored as "<prefix><key>" with SETEX; tag registrations live in
sets named "<prefix>tag:<tag>". Every redis error is re-raised as
CacheBackendError so the fallback selector can switch backends.
"""

from typing import Callable, Optional, Sequence, TypeVar

from redis import Redis
from redis.exceptions import RedisError

from .backend import CacheBackend, CacheBackendError

T = TypeVar("T")

# Scan/delete batch size used by clear()
_CLEAR_BATCH = 500


class RedisCacheBackend(CacheBackend):
    """Cache backend on a shared Redis instance.

    Args:
        client: Redis client created with decode_responses=True
        prefix: Namespace for every key and tag set
        tag_ttl: Lifetime of tag sets; must be at least the longest entry TTL
            so a key never outlives its tag registration
    """

    name = "redis"

    def __init__(self, client: Redis, prefix: str = "docflow:", tag_ttl: int = 3600):
        self._client = client
        self._prefix = prefix
        self._tag_ttl = tag_ttl

    @classmethod
    def from_url(cls, url: str, prefix: str = "docflow:", tag_ttl: int = 3600) -> "RedisCacheBackend":
        client = Redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        return cls(client, prefix=prefix, tag_ttl=tag_ttl)

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _tag_key(self, tag: str) -> str:
        return f"{self._prefix}tag:{tag}"

    def _call(self, operation: str, func: Callable[[], T]) -> T:
        try:
            return func()
        except RedisError as exc:
            raise CacheBackendError(f"redis {operation} failed: {exc}") from exc

    def get(self, key: str) -> Optional[str]:
        return self._call("get", lambda: self._client.get(self._key(key)))

    def set(self, key: str, value: str, ttl: int, tags: Sequence[str] = ()) -> None:
        def _write():
            pipe = self._client.pipeline()
            pipe.setex(self._key(key), ttl, value)
            for tag in tags:
                tag_key = self._tag_key(tag)
                pipe.sadd(tag_key, key)
                pipe.expire(tag_key, max(ttl, self._tag_ttl))
            pipe.execute()

        self._call("set", _write)

    def delete(self, key: str) -> bool:
        return self._call("delete", lambda: self._client.delete(self._key(key)) > 0)

    def invalidate_tag(self, tag: str) -> int:
        def _invalidate():
            tag_key = self._tag_key(tag)
            members = self._client.smembers(tag_key)
            removed = 0
            if members:
                removed = self._client.delete(*[self._key(member) for member in members])
            self._client.delete(tag_key)
            return removed

        return self._call("invalidate_tag", _invalidate)

    def clear(self) -> int:
        def _clear():
            removed = 0
            batch = []
            for name in self._client.scan_iter(match=f"{self._prefix}*", count=_CLEAR_BATCH):
                batch.append(name)
                if len(batch) >= _CLEAR_BATCH:
                    removed += self._client.delete(*batch)
                    batch = []
            if batch:
                removed += self._client.delete(*batch)
            return removed

        return self._call("clear", _clear)

    def ping(self) -> bool:
        return bool(self._call("ping", self._client.ping))
