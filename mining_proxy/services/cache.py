import json
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Mapping, Optional


class CacheStatus(str, Enum):
    """How a proxied payload was served."""
    HIT = "hit"
    STALE = "stale"
    MISS = "miss"


def cache_key(endpoint: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """
    Exact-match key for a logical upstream request.
    Parameters are serialized with sorted keys so insertion order never matters.
    """
    serialized = json.dumps(dict(params), sort_keys=True, separators=(",", ":"), default=str) if params else ""
    return f"{endpoint}::{serialized}"


class Cache(ABC):
    """
    Minimal cache interface to enable swapping backends (memory, Redis, none) without changing callers.

    Entries stay readable through get_stale() after they expire, so callers can
    serve a degraded payload while the upstream is failing.
    """

    name = "abstract"

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Return the value only while it is fresh."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        ...

    @abstractmethod
    async def get_stale(self, key: str) -> Optional[Any]:
        """Return the value regardless of freshness."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    async def sweep(self) -> int:
        """Purge entries past their stale retention window; returns the number removed."""
        return 0

    async def close(self) -> None:
        return None
