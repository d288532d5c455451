from .base import AggregationEngine, AggregationResult, OutcomeStatus, SourceOutcome
from .browser_pool import BrowserPool
from .executor import RetryingExecutor, backoff_delay
from .limiter import ConcurrencyLimiter
from .aggregator import ProductAggregator, build_aggregator

__all__ = [
    "AggregationEngine",
    "AggregationResult",
    "BrowserPool",
    "ConcurrencyLimiter",
    "OutcomeStatus",
    "ProductAggregator",
    "RetryingExecutor",
    "SourceOutcome",
    "backoff_delay",
    "build_aggregator",
]
