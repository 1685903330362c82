import logging
from typing import Any, Optional

from .cache import Cache
from .cache_backends import InProcessLRUCache, RedisCache
from mining_proxy.config import (
    CACHE_BACKEND,
    CACHE_CAPACITY,
    CACHE_KEY_PREFIX,
    CACHE_STALE_RETENTION_SECONDS,
    REDIS_URL,
)

logger = logging.getLogger(__name__)


def build_cache(backend: Optional[str] = None) -> Cache:
    """
    Returns a new cache instance based on configuration:
      - "none"   -> no-op backend (always misses, no stale fallback)
      - "memory" -> in-process LRU (fastest for single instance)
      - "redis"  -> shared cache across workers

    The app owns the returned instance for its lifetime; nothing here is a
    process-wide singleton, so tests can build isolated caches.
    """
    backend = (backend or CACHE_BACKEND).lower()

    if backend == "memory":
        return InProcessLRUCache(capacity=CACHE_CAPACITY, stale_retention_seconds=CACHE_STALE_RETENTION_SECONDS)
    if backend == "none":
        return _NoCache()
    if backend == "redis":
        return RedisCache.from_url(REDIS_URL, prefix=CACHE_KEY_PREFIX,
                                   stale_retention_seconds=CACHE_STALE_RETENTION_SECONDS)

    logger.warning("Unknown CACHE_BACKEND %r; falling back to memory", backend)
    return InProcessLRUCache(capacity=CACHE_CAPACITY, stale_retention_seconds=CACHE_STALE_RETENTION_SECONDS)


class _NoCache(Cache):
    """No-op cache used when caching is disabled."""
    name = "none"
    async def get(self, key: str): return None
    async def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None): pass
    async def get_stale(self, key: str): return None
    async def delete(self, key: str): pass
