"""Primary/fallback backend selection.

The coordinator talks to a single FallbackCacheBackend. Operations go to
the primary (Redis) while it is healthy. The first CacheBackendError marks
the primary down and the operation is repeated on the in-memory fallback.
The primary is retried lazily: the next operation after retry_seconds
pings it, and on success switches back.

Tags invalidated while the primary was down are replayed on it when it
comes back, and the fallback is emptied, so neither backend serves a
projection that was invalidated while it was not in use.
"""

import threading
from typing import Callable, Optional, Sequence, Set, TypeVar

from ..domain.clock import Clock, SystemClock
from ..observability.logging_config import get_logger
from ..observability.metrics import cache_backend_errors_total
from .backend import CacheBackend, CacheBackendError
from .memory_backend import InMemoryCacheBackend

logger = get_logger(__name__)

T = TypeVar("T")


class FallbackCacheBackend(CacheBackend):
    """Routes cache operations to the primary backend or the in-memory fallback.

    Args:
        primary: Shared backend (Redis); None to run on the fallback only
        fallback: In-process backend used while the primary is down
        clock: Time source for the retry interval
        retry_seconds: Delay before the primary is tried again after a failure
    """

    name = "fallback"

    def __init__(
        self,
        primary: Optional[CacheBackend],
        fallback: Optional[InMemoryCacheBackend] = None,
        clock: Optional[Clock] = None,
        retry_seconds: int = 30,
    ):
        self._primary = primary
        self._clock = clock or SystemClock()
        self._fallback = fallback or InMemoryCacheBackend(clock=self._clock)
        self._retry_seconds = retry_seconds
        self._lock = threading.Lock()
        self._primary_up = primary is not None
        self._retry_at = 0.0
        self._pending_tags: Set[str] = set()
        self._pending_clear = False

    @property
    def primary_connected(self) -> bool:
        return self._primary is not None and self._primary_up

    @property
    def fallback(self) -> InMemoryCacheBackend:
        return self._fallback

    def _mark_down(self, operation: str, exc: Exception) -> None:
        with self._lock:
            was_up = self._primary_up
            self._primary_up = False
            self._retry_at = self._clock.monotonic() + self._retry_seconds
        cache_backend_errors_total.labels(backend=self._primary.name, operation=operation).inc()
        if was_up:
            logger.warning(
                f"Cache primary unavailable during {operation}, using in-memory fallback: {exc}"
            )

    def _try_recover(self) -> None:
        with self._lock:
            if self._primary is None or self._primary_up:
                return
            if self._clock.monotonic() < self._retry_at:
                return
            self._retry_at = self._clock.monotonic() + self._retry_seconds
            pending = set(self._pending_tags)
            pending_clear = self._pending_clear

        try:
            self._primary.ping()
            if pending_clear:
                self._primary.clear()
            for tag in pending:
                self._primary.invalidate_tag(tag)
        except CacheBackendError as exc:
            cache_backend_errors_total.labels(backend=self._primary.name, operation="reconnect").inc()
            logger.debug(f"Cache primary still unavailable: {exc}")
            return

        with self._lock:
            self._pending_tags -= pending
            if pending_clear:
                self._pending_clear = False
            self._primary_up = True
        self._fallback.clear()
        logger.info(f"Cache primary reconnected, replayed {len(pending)} tag invalidation(s)")

    def _run(self, operation: str, func: Callable[[CacheBackend], T]) -> T:
        self._try_recover()
        if self.primary_connected:
            try:
                return func(self._primary)
            except CacheBackendError as exc:
                self._mark_down(operation, exc)
        return func(self._fallback)

    def get(self, key: str) -> Optional[str]:
        return self._run("get", lambda backend: backend.get(key))

    def set(self, key: str, value: str, ttl: int, tags: Sequence[str] = ()) -> None:
        self._run("set", lambda backend: backend.set(key, value, ttl, tags))

    def delete(self, key: str) -> bool:
        return self._run("delete", lambda backend: backend.delete(key))

    def invalidate_tag(self, tag: str) -> int:
        self._try_recover()
        if self.primary_connected:
            try:
                return self._primary.invalidate_tag(tag)
            except CacheBackendError as exc:
                self._mark_down("invalidate_tag", exc)
        if self._primary is not None:
            with self._lock:
                self._pending_tags.add(tag)
        return self._fallback.invalidate_tag(tag)

    def clear(self) -> int:
        removed = self._fallback.clear()
        if self._primary is not None:
            try:
                removed += self._primary.clear()
            except CacheBackendError as exc:
                self._mark_down("clear", exc)
                with self._lock:
                    self._pending_clear = True
        return removed

    def ping(self) -> bool:
        # The fallback is always available
        return True

    def size(self) -> Optional[int]:
        return self._fallback.size()
