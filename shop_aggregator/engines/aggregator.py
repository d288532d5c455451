from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from .base import AggregationEngine, AggregationResult, SourceOutcome
from .browser_pool import BrowserPool
from .executor import RetryingExecutor
from .limiter import ConcurrencyLimiter
from ..config import AggregatorConfig
from ..errors import AggregateTimeoutError, SourceScrapeError
from ..extractors.base import SourceExtractor
from ..extractors.registry import ExtractorRegistry, registry_from_config
from ..models import Product, SearchRequest
from ..utils.cache import CacheKey, ResultCache
from ..utils.scoring import ranking_key
from ..utils.validation import validate_search_params

logger = logging.getLogger(__name__)


class ProductAggregator(AggregationEngine):
    """
    Fans a search out to every configured storefront and merges the results.
    - Pool owns the browser; executor owns retries and page lifetimes.
    - Extractors own page parsing.
    - Concurrency capped process-wide by the limiter, results memoized by the cache.

    One failing or slow storefront never fails the request: each source
    settles into its own SourceOutcome. With a request deadline, sources still
    running when it elapses are reported as failed and left to finish in the
    background; their late results are discarded (though still cached).
    """
    def __init__(
        self,
        config: AggregatorConfig,
        pool: BrowserPool,
        extractors: Iterable[SourceExtractor] | None = None,
        *,
        registry: ExtractorRegistry | None = None,
        cache: ResultCache | None = None,
        limiter: ConcurrencyLimiter | None = None,
        executor: RetryingExecutor | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.config = config
        self.pool = pool
        if extractors is None:
            registry = registry or registry_from_config(config)
            extractors = registry.build(config.sources, config=config)
        self.extractors: List[SourceExtractor] = list(extractors)
        self.cache = cache if cache is not None else ResultCache(config.cache_ttl)
        self.limiter = limiter or ConcurrencyLimiter(config.max_concurrency)
        self.executor = executor or RetryingExecutor.from_config(pool, config)
        self._clock = clock
        # Strong references so abandoned tasks are not garbage collected mid-flight.
        self._abandoned: Set[asyncio.Task[SourceOutcome]] = set()

    async def search_products(
        self,
        term: Any,
        price_ceiling: Any = None,
        category: Any = None,
    ) -> AggregationResult:
        """Validate raw parameters, then aggregate. Raises ValidationError on bad input."""
        request = validate_search_params(
            term,
            price_ceiling,
            category,
            max_price=self.config.max_price,
            max_category_length=self.config.max_category_length,
        )
        return await self.aggregate(request)

    async def aggregate(self, request: SearchRequest) -> AggregationResult:
        started = self._clock()
        logger.info("Starting scrape for: %r (ceiling=%s, category=%s)",
                    request.term, request.price_ceiling, request.category)
        if not self.extractors:
            return AggregationResult(response_time_ms=self._elapsed_ms(started))

        tasks: Dict[asyncio.Task[SourceOutcome], SourceExtractor] = {
            asyncio.create_task(self._run_source(ext, request), name=f"scrape:{ext.name}"): ext
            for ext in self.extractors
        }
        deadline = self.config.request_deadline
        done, pending = await asyncio.wait(tasks, timeout=deadline)

        if pending:
            self._abandon(pending)
            if not done:
                raise AggregateTimeoutError(
                    f"no source finished within {deadline}s for {request.term!r}"
                )

        # Outcomes follow the configured source order, not completion order.
        outcomes: List[SourceOutcome] = []
        for task, ext in tasks.items():
            if task in done:
                outcomes.append(task.result())
            else:
                logger.warning("%s did not finish within %ss; excluding it", ext.name, deadline)
                outcomes.append(SourceOutcome.failed(ext.name, f"timed out after {deadline}s"))

        products = self.merge(outcomes)
        result = AggregationResult(
            products=products,
            outcomes=outcomes,
            response_time_ms=self._elapsed_ms(started),
        )
        for outcome in outcomes:
            if outcome.ok:
                logger.info("%s: Found %s products", outcome.source, len(outcome.products))
            else:
                logger.error("%s scraping failed: %s", outcome.source, outcome.error)
        logger.info("Returning %s of %s products in %s ms",
                    result.total, sum(result.source_counts.values()), result.response_time_ms)
        return result

    def merge(self, outcomes: Iterable[SourceOutcome]) -> List[Product]:
        """Products of every fulfilled source, best score first, cheapest first on ties, truncated."""
        merged = [p for o in outcomes if o.ok for p in o.products]
        merged.sort(key=ranking_key)
        return merged[: self.config.max_results]

    async def _run_source(self, extractor: SourceExtractor, request: SearchRequest) -> SourceOutcome:
        async with self.limiter:
            key = CacheKey.for_request(extractor.name, request)
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug("%s: cache hit for %r", extractor.name, request.term)
                return SourceOutcome.fulfilled(extractor.name, list(cached), from_cache=True)

            async def operation(page: Any) -> List[Product]:
                return await extractor.scrape(page, request)

            try:
                products = await self.executor.run(operation, extractor.name)
            except SourceScrapeError as exc:
                return SourceOutcome.failed(extractor.name, str(exc))

        self.cache.set(key, products)
        return SourceOutcome.fulfilled(extractor.name, products)

    def _abandon(self, pending: Iterable[asyncio.Task[SourceOutcome]]) -> None:
        for task in pending:
            self._abandoned.add(task)
            task.add_done_callback(self._discard_late_result)

    def _discard_late_result(self, task: asyncio.Task[SourceOutcome]) -> None:
        self._abandoned.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Abandoned %s ended with %r", task.get_name(), exc)
            return
        outcome = task.result()
        logger.info("Discarding late %s result from %s (%s products)",
                    outcome.status.value, outcome.source, len(outcome.products))

    @property
    def abandoned(self) -> int:
        return len(self._abandoned)

    def _elapsed_ms(self, started: float) -> int:
        return int(round((self._clock() - started) * 1000))


def build_aggregator(config: AggregatorConfig, pool: Optional[BrowserPool] = None) -> ProductAggregator:
    """Wire an aggregator and its collaborators from configuration."""
    return ProductAggregator(config, pool or BrowserPool(config))
