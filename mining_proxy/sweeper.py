# mining_proxy/sweeper.py

import asyncio
import logging
from contextlib import suppress

from mining_proxy.config import CACHE_SWEEP_INTERVAL_SECONDS
from mining_proxy.services.cache import Cache

logger = logging.getLogger(__name__)

class CacheSweeper:
    """Periodic background worker that purges cache entries past their stale retention window."""

    def __init__(self, cache: Cache, interval_seconds: int | None = None) -> None:
        # interval_seconds: how often to sweep; 0 disables the worker
        self.cache = cache
        self.interval_seconds = CACHE_SWEEP_INTERVAL_SECONDS if interval_seconds is None else interval_seconds
        self._task: asyncio.Task | None = None
        self._stop = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None

    async def start(self) -> None:
        """Start the background worker task."""
        if self._task is not None:
            return  # Already started
        if self.interval_seconds <= 0:
            logger.info("CacheSweeper disabled (interval=%s).", self.interval_seconds)
            return
        self._stop.clear()
        logger.info("Starting CacheSweeper worker (interval=%s sec, backend=%s)...",
                    self.interval_seconds, self.cache.name)
        self._task = asyncio.create_task(self._run(), name="cache-sweeper")

    async def stop(self) -> None:
        """Signal the worker to stop and wait for it to finish."""
        if self._task is None:
            return
        logger.info("Stopping CacheSweeper worker...")
        self._stop.set()
        try:
            await asyncio.wait_for(self._task, timeout=5)
        except asyncio.TimeoutError:
            logger.warning("Cache sweeper did not stop in time; cancelling...")
            self._task.cancel()
            with suppress(asyncio.CancelledError):
                await self._task
        finally:
            self._task = None
        logger.info("CacheSweeper worker stopped.")

    async def _run(self) -> None:
        """Main loop: sweep periodically until stop is requested."""
        try:
            while not self._stop.is_set():
                try:
                    await asyncio.wait_for(self._stop.wait(), timeout=self.interval_seconds)
                except asyncio.TimeoutError:
                    pass
                if self._stop.is_set():
                    break
                try:
                    await self.sweep_once()
                except Exception:
                    logger.exception("Cache sweep failed with an exception.")
        finally:
            logger.info("CacheSweeper loop exiting.")

    async def sweep_once(self) -> int:
        removed = await self.cache.sweep()
        if removed:
            logger.info("Cache sweep removed %d stale entries.", removed)
        return removed
