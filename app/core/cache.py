from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from loguru import logger

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    value: T
    produced_at: datetime


def _utcnow() -> datetime:
    """
    Get the current UTC time as a timezone-aware datetime.
    """
    return datetime.now(timezone.utc)


def _consume_exception(task: "asyncio.Task[Any]") -> None:
    # Keeps asyncio from logging "exception was never retrieved" when every
    # waiter went away before the computation failed.
    if not task.cancelled():
        task.exception()


class ResultCache:
    """
    In-memory, key-addressed cache of computed results with request collapsing.

    Entries never expire on their own; they stay valid until invalidated.
    Concurrent misses on the same key share one in-flight computation, and
    every waiter receives its value or its exception. Failures are not stored,
    so the next request after a failure computes again.
    """

    def __init__(self) -> None:
        self._data: dict[str, CacheEntry[Any]] = {}
        self._inflight: dict[str, asyncio.Task[Any]] = {}
        self._lock = threading.Lock()

    async def get_or_compute(self, key: str, producer: Callable[[], Awaitable[T]]) -> T:
        """
        Return the cached value for `key`, computing it with `producer` on a miss.

        Parameters:
            key (str): Cache key, e.g. "directory" or "variant:<channel id>".
            producer (Callable[[], Awaitable[T]]): Coroutine factory invoked at
                most once per miss, whatever the number of concurrent callers.

        Returns:
            T: The cached or freshly computed value.

        Raises:
            Exception: whatever `producer` raised, re-raised to every waiter.
        """
        with self._lock:
            entry = self._data.get(key)
            if entry is not None:
                logger.trace("Cache hit for {}", key)
                return entry.value
            task = self._inflight.get(key)
            if task is None:
                logger.debug("Cache miss for {}; computing", key)
                task = asyncio.get_running_loop().create_task(
                    self._compute(key, producer), name=f"cache:{key}"
                )
                task.add_done_callback(_consume_exception)
                self._inflight[key] = task
            else:
                logger.trace("Joining in-flight computation for {}", key)
        # Shield so one waiter being cancelled does not cancel the others.
        return await asyncio.shield(task)

    async def _compute(self, key: str, producer: Callable[[], Awaitable[T]]) -> T:
        me = asyncio.current_task()
        try:
            value = await producer()
        except BaseException:
            with self._lock:
                if self._inflight.get(key) is me:
                    self._inflight.pop(key, None)
            logger.debug("Computation for {} failed; nothing cached", key)
            raise
        with self._lock:
            if self._inflight.get(key) is me:
                self._inflight.pop(key, None)
                self._data[key] = CacheEntry(value=value, produced_at=_utcnow())
                logger.trace("Cache set for {}", key)
            else:
                logger.debug("Discarding result for {} invalidated mid-flight", key)
        return value

    def peek(self, key: str) -> Optional[CacheEntry[Any]]:
        """
        Return the stored entry for `key` without computing anything.

        Parameters:
            key (str): Cache key to look up.

        Returns:
            Optional[CacheEntry]: The stored entry, or None when absent or
            still being computed.
        """
        with self._lock:
            return self._data.get(key)

    def keys(self) -> list[str]:
        """
        List the keys that currently hold a stored value.

        Returns:
            list[str]: Snapshot of stored keys; in-flight keys are not included.
        """
        with self._lock:
            return list(self._data)

    def invalidate(self, key: Optional[str] = None) -> int:
        """
        Remove one entry, or every entry when `key` is None.

        An in-flight computation for a removed key is detached: its waiters
        still get its result, but it is not stored and the next request
        starts a fresh computation.

        Parameters:
            key (Optional[str]): Key to remove; None clears the whole cache.

        Returns:
            int: Number of stored entries removed.
        """
        with self._lock:
            if key is None:
                removed = len(self._data)
                self._data.clear()
                self._inflight.clear()
            else:
                removed = 1 if self._data.pop(key, None) is not None else 0
                self._inflight.pop(key, None)
        logger.debug("Cache invalidate {} ({} removed)", key or "<all>", removed)
        return removed

    def invalidate_prefix(self, prefix: str) -> int:
        """
        Remove every entry whose key starts with `prefix`.

        In-flight computations under the prefix are detached the same way
        `invalidate` detaches them.

        Parameters:
            prefix (str): Key prefix, e.g. "variant:".

        Returns:
            int: Number of stored entries removed.
        """
        with self._lock:
            keys = [k for k in self._data if k.startswith(prefix)]
            for k in keys:
                self._data.pop(k, None)
            for k in [k for k in self._inflight if k.startswith(prefix)]:
                self._inflight.pop(k, None)
        logger.debug("Cache invalidate prefix {} ({} removed)", prefix, len(keys))
        return len(keys)

    async def refresh(self, key: str, producer: Callable[[], Awaitable[T]]) -> Optional[T]:
        """
        Invalidate `key` and eagerly recompute it.

        A failed recomputation is logged and leaves the key empty, so the next
        request falls back to computing lazily.
        """
        self.invalidate(key)
        try:
            return await self.get_or_compute(key, producer)
        except Exception as e:
            logger.warning(f"Eager refresh of {key} failed: {e}")
            return None

    async def close(self) -> None:
        """Cancel in-flight computations and drop every entry."""
        with self._lock:
            tasks = list(self._inflight.values())
            self._inflight.clear()
            self._data.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
