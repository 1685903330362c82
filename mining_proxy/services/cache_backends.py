import json
import logging
import math
import time
from typing import Any, Callable, Optional

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from .cache import Cache
from .lru_cache import LRUCacheImpl

logger = logging.getLogger(__name__)


class InProcessLRUCache(Cache):
    """In-process LRU cache backend."""

    name = "memory"

    def __init__(self, capacity: int, stale_retention_seconds: int = 0,
                 clock: Callable[[], float] = time.monotonic):
        self._lru = LRUCacheImpl(capacity=capacity, clock=clock)
        self.stale_retention_seconds = stale_retention_seconds

    async def get(self, key: str) -> Optional[Any]:
        return self._lru.get(key)

    async def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        self._lru.set(key, value, ttl_seconds)

    async def get_stale(self, key: str) -> Optional[Any]:
        return self._lru.get_stale(key)

    async def delete(self, key: str) -> None:
        self._lru.delete(key)

    async def sweep(self) -> int:
        if self.stale_retention_seconds <= 0:
            return 0
        return self._lru.sweep(self.stale_retention_seconds)

    def __len__(self) -> int:
        return len(self._lru)


class RedisCache(Cache):
    """
    Shared cache backend on Redis.

    Each entry is stored as {"value": ..., "expires_at": <unix seconds>} so that
    freshness is decided here while the stale copy stays readable. Redis itself
    drops the key once the stale retention window is over; with retention 0 the
    key lives until overwritten.

    Redis failures are logged and reported as a miss: an unavailable cache must
    not take the proxy down with it.
    """

    name = "redis"

    def __init__(self, client: "aioredis.Redis", prefix: str = "", stale_retention_seconds: int = 0,
                 clock: Callable[[], float] = time.time):
        self._redis = client
        self._prefix = prefix
        self.stale_retention_seconds = stale_retention_seconds
        self._clock = clock

    @classmethod
    def from_url(cls, url: str, **kwargs) -> "RedisCache":
        return cls(aioredis.Redis.from_url(url, decode_responses=True), **kwargs)

    def _k(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def _load(self, key: str) -> Optional[dict]:
        try:
            raw = await self._redis.get(self._k(key))
        except RedisError as ex:
            logger.exception("redis_cache: get failed for %s: %s", key, ex)
            return None
        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError as ex:
            logger.exception("redis_cache: failed to decode entry %s: %s", key, ex)
            return None

    async def get(self, key: str) -> Optional[Any]:
        entry = await self._load(key)
        if entry is None:
            return None
        expires_at = entry.get("expires_at")
        if expires_at is not None and self._clock() >= expires_at:
            return None
        return entry.get("value")

    async def get_stale(self, key: str) -> Optional[Any]:
        entry = await self._load(key)
        if entry is None:
            return None
        return entry.get("value")

    async def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds is not None else None
        payload = json.dumps({"value": value, "expires_at": expires_at}, separators=(",", ":"), ensure_ascii=False)
        ex = None
        if ttl_seconds is not None and self.stale_retention_seconds > 0:
            ex = max(1, math.ceil(ttl_seconds + self.stale_retention_seconds))
        try:
            await self._redis.set(self._k(key), payload, ex=ex)
        except RedisError as ex_:
            logger.exception("redis_cache: set failed for %s: %s", key, ex_)

    async def delete(self, key: str) -> None:
        try:
            await self._redis.delete(self._k(key))
        except RedisError as ex:
            logger.exception("redis_cache: delete failed for %s: %s", key, ex)

    async def close(self) -> None:
        await self._redis.aclose()
