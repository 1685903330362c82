# mining_proxy/services/proxy_service.py

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from mining_proxy.services.cache import Cache, CacheStatus, cache_key
from mining_proxy.services.fetch_retry import RetryPolicy, Sleep, fetch_with_retry, is_retryable_status
from mining_proxy.services.upstreams import UpstreamRequest

logger = logging.getLogger(__name__)

# Payloads are cached wrapped so that a JSON null upstream body is still an entry.
ENTRY_FIELD = "payload"


class UpstreamError(Exception):
    """The upstream answered with a non-success status and no stale copy could stand in."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"upstream responded with {status_code}")
        self.status_code = status_code
        self.body = body


@dataclass
class ProxyResult:
    payload: Any
    cache_status: CacheStatus
    ttl_seconds: int


class UpstreamProxy:
    """
    Read-through proxy in front of an unreliable upstream.

    Flow per request:
      - fresh cache hit -> served as HIT, no upstream call
      - miss -> fetch with retry
          - 2xx -> parsed, cached for `ttl_seconds`, served as MISS
          - 429/5xx or network failure -> stale copy served as STALE when one exists
          - anything else -> UpstreamError with the upstream status and body

    Concurrent misses for the same key are not de-duplicated; each one calls
    upstream and the last writer wins.
    """

    def __init__(self, client: httpx.AsyncClient, cache: Cache, sleep: Sleep = asyncio.sleep):
        self.client = client
        self.cache = cache
        self._sleep = sleep

    async def get_json(self, request: UpstreamRequest, *, ttl_seconds: int, policy: RetryPolicy) -> ProxyResult:
        key = cache_key(request.endpoint, request.key_params)

        cached = await self.cache.get(key)
        if cached is not None:
            return ProxyResult(cached[ENTRY_FIELD], CacheStatus.HIT, ttl_seconds)

        try:
            response = await fetch_with_retry(
                self.client,
                request.url,
                params=request.params or None,
                headers=request.headers,
                policy=policy,
                sleep=self._sleep,
            )
        except httpx.RequestError as ex:
            stale = await self._stale(key, f"network error: {ex}")
            if stale is not None:
                return ProxyResult(stale[ENTRY_FIELD], CacheStatus.STALE, ttl_seconds)
            raise

        if response.is_success:
            payload = response.json()
            await self.cache.set(key, {ENTRY_FIELD: payload}, ttl_seconds=ttl_seconds)
            return ProxyResult(payload, CacheStatus.MISS, ttl_seconds)

        if is_retryable_status(response.status_code):
            stale = await self._stale(key, f"status {response.status_code}")
            if stale is not None:
                return ProxyResult(stale[ENTRY_FIELD], CacheStatus.STALE, ttl_seconds)

        raise UpstreamError(response.status_code, response.text)

    async def _stale(self, key: str, reason: str) -> Optional[Any]:
        stale = await self.cache.get_stale(key)
        if stale is not None:
            logger.warning("proxy: serving stale %s (%s)", key, reason)
        return stale
