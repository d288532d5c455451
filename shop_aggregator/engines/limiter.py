from __future__ import annotations

import asyncio
from collections import deque
from typing import Deque, Optional


class ConcurrencyLimiter:
    """
    Process-wide cap on scrape operations that hold a browser page.

    Works like asyncio.Semaphore but admission is strictly first-come,
    first-served: a released slot is handed directly to the oldest waiter,
    so a newcomer can never overtake the queue. A waiter cancelled while
    queued leaves the queue; a waiter cancelled right after being handed a
    slot passes it on.

        async with limiter:
            ...
    """

    def __init__(self, limit: int) -> None:
        if limit <= 0:
            raise ValueError("limit must be > 0")
        self.limit = limit
        self._active = 0
        self._waiters: Deque[asyncio.Future[None]] = deque()

    @property
    def active(self) -> int:
        return self._active

    @property
    def pending(self) -> int:
        return sum(1 for w in self._waiters if not w.done())

    async def acquire(self) -> None:
        if self._active < self.limit and not self._waiters:
            self._active += 1
            return

        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        try:
            await fut
        except asyncio.CancelledError:
            if fut.done() and not fut.cancelled():
                # The slot was already ours; hand it to the next in line.
                self.release()
            else:
                self._remove(fut)
            raise

    def release(self) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                # Slot transfers as-is; the active count does not change.
                waiter.set_result(None)
                return
        if self._active <= 0:
            raise RuntimeError("release() called more times than acquire()")
        self._active -= 1

    def _remove(self, fut: asyncio.Future[None]) -> None:
        try:
            self._waiters.remove(fut)
        except ValueError:
            pass

    async def __aenter__(self) -> "ConcurrencyLimiter":
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> Optional[bool]:
        self.release()
        return None
