"""Cache-aside coordinator with tag invalidation.

Read path:
    get_or_load(key, loader, ttl, tags) → cached value on hit; on miss the
    loader runs, its result is stored under key for ttl and registered
    against every tag, then returned. Concurrent misses may both run the
    loader; there is no single-flight de-duplication.

Write path:
    After an authoritative write commits, the mutating operation calls
    invalidate_tags() with every tag that may hold a stale projection.

Cache errors never escape the coordinator: a failed read is a miss, a
failed write or invalidation is logged and counted. Loader errors are not
cache errors and propagate.

Activation and TTLs come from an immutable CacheSettings injected at
construction. They change only when refresh_settings() is called.
"""

import json
import threading
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Iterable, Optional, TypeVar, Union

from pydantic import TypeAdapter
from sqlalchemy.orm import Session

from ..config import Settings
from ..models.system_setting import SystemSetting
from ..observability.logging_config import get_logger
from ..observability.metrics import cache_invalidated_keys_total, cache_operations_total
from .backend import CacheBackend
from .fallback import FallbackCacheBackend

logger = get_logger(__name__)

T = TypeVar("T")

CACHE_ENABLED_SETTING = "cache_enabled"


@dataclass(frozen=True)
class CacheSettings:
    """Cache activation and TTLs (seconds)."""
    enabled: bool = True
    default_ttl: int = 300
    document_ttl: int = 600
    branch_list_ttl: int = 300
    branches_ttl: int = 3600

    @classmethod
    def from_settings(cls, settings: Settings) -> "CacheSettings":
        return cls(
            enabled=settings.CACHE_ENABLED,
            default_ttl=settings.CACHE_DEFAULT_TTL,
            document_ttl=settings.CACHE_DOCUMENT_TTL,
            branch_list_ttl=settings.CACHE_BRANCH_LIST_TTL,
            branches_ttl=settings.CACHE_BRANCHES_TTL,
        )


def _parse_bool(value: str) -> Optional[bool]:
    normalized = value.strip().lower()
    if normalized in ("true", "1", "yes", "on"):
        return True
    if normalized in ("false", "0", "no", "off"):
        return False
    return None


def load_cache_settings(session: Session, settings: Settings) -> CacheSettings:
    """Environment defaults overlaid with the persisted cache_enabled switch.

    Args:
        session: Database session
        settings: Application settings (defaults)

    Returns:
        CacheSettings: Effective cache settings
    """
    cache_settings = CacheSettings.from_settings(settings)
    row = session.get(SystemSetting, CACHE_ENABLED_SETTING)
    if row is None:
        return cache_settings

    enabled = _parse_bool(row.value)
    if enabled is None:
        logger.warning(f"Ignoring invalid {CACHE_ENABLED_SETTING} value: {row.value!r}")
        return cache_settings
    return replace(cache_settings, enabled=enabled)


def save_cache_enabled(session: Session, enabled: bool) -> None:
    """Persist the cache_enabled switch (caller commits)."""
    row = session.get(SystemSetting, CACHE_ENABLED_SETTING)
    value = "true" if enabled else "false"
    if row is None:
        session.add(SystemSetting(key=CACHE_ENABLED_SETTING, value=value))
    else:
        row.value = value
    session.flush()


class CacheCoordinator:
    """Cache-aside reads and tag invalidation over one CacheBackend.

    Args:
        backend: Backend to use (normally a FallbackCacheBackend)
        settings: Initial cache settings
        settings_loader: Called by refresh_settings() to re-read settings
    """

    def __init__(
        self,
        backend: CacheBackend,
        settings: Optional[CacheSettings] = None,
        settings_loader: Optional[Callable[[], CacheSettings]] = None,
    ):
        self._backend = backend
        self._settings = settings or CacheSettings()
        self._settings_loader = settings_loader
        self._adapters: Dict[Any, TypeAdapter] = {}
        self._stats_lock = threading.Lock()
        self._stats = {"hits": 0, "misses": 0, "sets": 0, "deletes": 0, "errors": 0}

    @property
    def settings(self) -> CacheSettings:
        return self._settings

    @property
    def backend(self) -> CacheBackend:
        return self._backend

    def refresh_settings(self, settings: Optional[CacheSettings] = None) -> CacheSettings:
        """Re-read cache settings.

        Args:
            settings: New settings; if None the settings loader is called

        Returns:
            CacheSettings: The settings now in effect
        """
        if settings is None and self._settings_loader is not None:
            settings = self._settings_loader()
        if settings is not None and settings != self._settings:
            logger.info(f"Cache settings refreshed: enabled={settings.enabled}")
            self._settings = settings
        return self._settings

    def _adapter(self, model: Any) -> TypeAdapter:
        adapter = self._adapters.get(model)
        if adapter is None:
            adapter = TypeAdapter(model)
            self._adapters[model] = adapter
        return adapter

    def _serialize(self, value: Any, model: Any) -> str:
        if model is None:
            return json.dumps(value)
        return self._adapter(model).dump_json(value).decode("utf-8")

    def _deserialize(self, raw: str, model: Any) -> Any:
        if model is None:
            return json.loads(raw)
        return self._adapter(model).validate_json(raw)

    def _count(self, stat: str, amount: int = 1) -> None:
        with self._stats_lock:
            self._stats[stat] += amount

    def get_or_load(
        self,
        key: str,
        loader: Callable[[], T],
        ttl: Optional[int] = None,
        tags: Union[Iterable[str], Callable[[T], Iterable[str]]] = (),
        model: Any = None,
    ) -> T:
        """Return the cached value for key, loading and caching it on a miss.

        Args:
            key: Cache key
            loader: Reads the authoritative value; its errors propagate
            ttl: Lifetime in seconds (default_ttl if None)
            tags: Tags to register the key under, or a callable deriving
                them from the loaded value
            model: Type of the value (dataclass, pydantic model, list[...]).
                None means the value is plain JSON.

        Returns:
            The cached or freshly loaded value
        """
        if not self._settings.enabled:
            cache_operations_total.labels(operation="get", result="disabled").inc()
            return loader()

        raw = None
        try:
            raw = self._backend.get(key)
        except Exception:
            self._count("errors")
            cache_operations_total.labels(operation="get", result="error").inc()
            logger.warning("Cache read failed", extra={"cache_key": key}, exc_info=True)

        if raw is not None:
            try:
                value = self._deserialize(raw, model)
            except Exception:
                self._count("errors")
                logger.warning("Discarding undecodable cache entry", extra={"cache_key": key}, exc_info=True)
                self._safe_delete(key)
            else:
                self._count("hits")
                cache_operations_total.labels(operation="get", result="hit").inc()
                return value

        self._count("misses")
        cache_operations_total.labels(operation="get", result="miss").inc()
        value = loader()

        try:
            self._backend.set(
                key,
                self._serialize(value, model),
                ttl if ttl is not None else self._settings.default_ttl,
                tuple(tags(value)) if callable(tags) else tuple(tags),
            )
            self._count("sets")
            cache_operations_total.labels(operation="set", result="ok").inc()
        except Exception:
            self._count("errors")
            cache_operations_total.labels(operation="set", result="error").inc()
            logger.warning("Cache write failed", extra={"cache_key": key}, exc_info=True)

        return value

    def _safe_delete(self, key: str) -> None:
        try:
            self._backend.delete(key)
        except Exception:
            self._count("errors")
            logger.warning("Cache delete failed", extra={"cache_key": key}, exc_info=True)

    def invalidate_tags(self, *tags: str) -> int:
        """Invalidate every tag. Runs even while caching is disabled.

        Returns:
            Total number of keys removed
        """
        removed = 0
        for tag in dict.fromkeys(tags):
            try:
                count = self._backend.invalidate_tag(tag)
            except Exception:
                self._count("errors")
                cache_operations_total.labels(operation="invalidate", result="error").inc()
                logger.warning("Cache invalidation failed", extra={"tag": tag}, exc_info=True)
                continue
            removed += count
            cache_operations_total.labels(operation="invalidate", result="ok").inc()

        if removed:
            self._count("deletes", removed)
            cache_invalidated_keys_total.inc(removed)
        logger.debug(f"Invalidated cache tags {list(tags)}: {removed} key(s) removed")
        return removed

    def clear(self) -> int:
        """Remove every cache entry. Returns the number of keys removed."""
        try:
            removed = self._backend.clear()
        except Exception:
            self._count("errors")
            cache_operations_total.labels(operation="clear", result="error").inc()
            logger.warning("Cache clear failed", exc_info=True)
            return 0
        self._count("deletes", removed)
        cache_operations_total.labels(operation="clear", result="ok").inc()
        logger.info(f"Cache cleared: {removed} key(s) removed")
        return removed

    def stats(self) -> Dict[str, Any]:
        """Counters since start plus backend state."""
        with self._stats_lock:
            stats: Dict[str, Any] = dict(self._stats)
        lookups = stats["hits"] + stats["misses"]
        stats["hit_rate"] = round(stats["hits"] / lookups, 4) if lookups else 0.0
        stats["enabled"] = self._settings.enabled
        if isinstance(self._backend, FallbackCacheBackend):
            stats["primary_connected"] = self._backend.primary_connected
        else:
            stats["primary_connected"] = False
        stats["fallback_size"] = self._backend.size()
        return stats

    def reset_stats(self) -> None:
        with self._stats_lock:
            for stat in self._stats:
                self._stats[stat] = 0
