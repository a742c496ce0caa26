"""Tag-invalidated cache-aside layer (Redis primary, in-memory fallback)"""

from .backend import CacheBackend, CacheBackendError, CacheEntry
from .memory_backend import InMemoryCacheBackend
from .redis_backend import RedisCacheBackend
from .fallback import FallbackCacheBackend
from .coordinator import CacheCoordinator, CacheSettings, load_cache_settings, save_cache_enabled

__all__ = [
    "CacheBackend",
    "CacheBackendError",
    "CacheEntry",
    "InMemoryCacheBackend",
    "RedisCacheBackend",
    "FallbackCacheBackend",
    "CacheCoordinator",
    "CacheSettings",
    "load_cache_settings",
    "save_cache_enabled",
]
