from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional, TypeVar

from playwright.async_api import Page

from ..config import AggregatorConfig
from ..errors import SourceScrapeError
from .browser_pool import BrowserPool

logger = logging.getLogger(__name__)

T = TypeVar("T")
PageOperation = Callable[[Page], Awaitable[T]]


def backoff_delay(
    attempt: int,
    *,
    base: float = 1.0,
    cap: float = 8.0,
    jitter: float = 0.5,
    rand: Callable[[], float] = random.random,
) -> float:
    """
    Seconds to wait after failed attempt number `attempt` (1-based).

    base * 2**(attempt-1), capped at `cap`, plus up to `jitter` seconds of
    random offset so concurrent sources do not retry in lockstep.
    """
    exp = min(cap, base * (2 ** (attempt - 1)))
    return exp + jitter * rand()


class RetryingExecutor:
    """
    Runs one page-bound scrape operation with bounded retries.

    Every attempt gets a fresh page from the pool and gives it back before
    the backoff sleep, the return, or the final SourceScrapeError. Failures
    are not classified here; anything an attempt raises counts as retryable.
    """

    def __init__(
        self,
        pool: BrowserPool,
        *,
        max_retries: int = 2,
        backoff_base: float = 1.0,
        backoff_cap: float = 8.0,
        backoff_jitter: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rand: Callable[[], float] = random.random,
    ) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        self.pool = pool
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.backoff_cap = backoff_cap
        self.backoff_jitter = backoff_jitter
        self._sleep = sleep
        self._rand = rand

    @classmethod
    def from_config(cls, pool: BrowserPool, config: AggregatorConfig) -> "RetryingExecutor":
        return cls(
            pool,
            max_retries=config.max_retries,
            backoff_base=config.backoff_base,
            backoff_cap=config.backoff_cap,
            backoff_jitter=config.backoff_jitter,
        )

    def delay_for(self, attempt: int) -> float:
        return backoff_delay(
            attempt,
            base=self.backoff_base,
            cap=self.backoff_cap,
            jitter=self.backoff_jitter,
            rand=self._rand,
        )

    async def run(self, operation: PageOperation[T], source: str, max_retries: Optional[int] = None) -> T:
        attempts = self.max_retries if max_retries is None else max_retries
        if attempts < 1:
            raise ValueError("max_retries must be >= 1")
        last_exc: Optional[BaseException] = None

        for attempt in range(1, attempts + 1):
            try:
                async with self.pool.page() as page:
                    return await operation(page)
            except Exception as exc:
                last_exc = exc
                logger.warning("Attempt %s/%s failed for %s: %s", attempt, attempts, source, exc)

            if attempt < attempts:
                delay = self.delay_for(attempt)
                logger.debug("Retrying %s in %.2fs", source, delay)
                await self._sleep(delay)

        raise SourceScrapeError(source, last_exc, attempts)
