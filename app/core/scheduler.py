from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional

from loguru import logger


class DirectoryRefresher:
    """Background task that periodically refreshes the channel directory.

    Every `interval_seconds` the `refresh` coroutine is awaited. Errors are
    logged and the loop keeps going; the cache then recomputes lazily on the
    next request.
    """

    def __init__(
        self, refresh: Callable[[], Awaitable[Any]], interval_seconds: float
    ) -> None:
        self._refresh = refresh
        self._interval = float(interval_seconds)
        self._stop: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> Optional[asyncio.Task[None]]:
        if self._interval <= 0:
            logger.info("Directory refresh disabled (DIRECTORY_REFRESH_INTERVAL_MIN<=0)")
            return None
        if self.running:
            return self._task
        self._stop = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(
            self._loop(self._stop), name="directory-refresh"
        )
        logger.info(f"Starting directory refresh task: interval={self._interval:g}s")
        return self._task

    async def _loop(self, stop: asyncio.Event) -> None:
        while True:
            try:
                await asyncio.wait_for(stop.wait(), timeout=self._interval)
                return
            except asyncio.TimeoutError:
                pass
            try:
                await self._refresh()
            except Exception as e:
                logger.warning(f"Directory refresh loop error: {e}")

    async def stop(self) -> None:
        if self._task is None:
            return
        if self._stop is not None:
            self._stop.set()
        try:
            await asyncio.wait_for(self._task, timeout=5)
        except asyncio.TimeoutError:
            self._task.cancel()
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None
            self._stop = None
