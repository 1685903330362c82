from collections import OrderedDict
from copy import deepcopy
from threading import RLock
from typing import Any, Callable, Optional
import math
import time

class LRUCacheImpl:
    """
    Thread-safe LRU cache with per-entry expiry.
    An entry is fresh while now < expires_at. Expired entries are NOT removed by get();
    they stay readable through get_stale() until overwritten, evicted by capacity,
    or purged by sweep().
    Values are stored and returned as deep copies to avoid accidental mutation.
    """
    def __init__(self, capacity: int = 10_000, clock: Callable[[], float] = time.monotonic):
        self.capacity = max(1, capacity)
        self._clock = clock
        self._data: "OrderedDict[str, tuple[float, Any]]" = OrderedDict()
        self._lock = RLock()

    def get(self, key: str) -> Optional[Any]:
        now = self._clock()
        with self._lock:
            item = self._data.get(key)
            if item is None:
                return None
            expires_at, value = item
            if now >= expires_at:
                return None
            # Move to MRU
            self._data.move_to_end(key)
            return deepcopy(value)

    def get_stale(self, key: str) -> Optional[Any]:
        with self._lock:
            item = self._data.get(key)
            if item is None:
                return None
            return deepcopy(item[1])

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds is not None else math.inf
        with self._lock:
            if key in self._data:
                self._data.pop(key)
            elif len(self._data) >= self.capacity:
                self._data.popitem(last=False)  # Evict LRU
            self._data[key] = (expires_at, deepcopy(value))

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def sweep(self, max_stale_seconds: float) -> int:
        """Remove entries that expired at least max_stale_seconds ago."""
        cutoff = self._clock() - max_stale_seconds
        with self._lock:
            victims = [k for k, (expires_at, _) in self._data.items() if expires_at <= cutoff]
            for k in victims:
                del self._data[k]
        return len(victims)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
