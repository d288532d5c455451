from __future__ import annotations

from typing import Optional


class AggregatorError(Exception):
    """Base class for every error raised by the aggregator."""


class ValidationError(AggregatorError):
    """Raised when raw search parameters cannot be turned into a SearchRequest."""


class BrowserLaunchError(AggregatorError):
    """The shared headless browser could not be started."""


class NavigationTimeoutError(AggregatorError):
    """A storefront search page did not load within the navigation timeout."""

    def __init__(self, url: str, timeout_ms: int) -> None:
        super().__init__(f"navigation to {url} timed out after {timeout_ms} ms")
        self.url = url
        self.timeout_ms = timeout_ms


class SelectorNotFoundError(AggregatorError):
    """
    The content-ready selector never appeared.
    Extractors catch this and degrade to an empty result.
    """

    def __init__(self, selector: str, timeout_ms: int) -> None:
        super().__init__(f"selector {selector!r} not found within {timeout_ms} ms")
        self.selector = selector
        self.timeout_ms = timeout_ms


class ElementParseError(AggregatorError):
    """A single candidate element could not be turned into a Product."""


class SourceScrapeError(AggregatorError):
    """Terminal failure for one source after all retry attempts were used."""

    def __init__(self, source: str, last_error: Optional[BaseException], attempts: int) -> None:
        super().__init__(f"Failed to scrape {source} after {attempts} attempts: {last_error}")
        self.source = source
        self.last_error = last_error
        self.attempts = attempts


class AggregateTimeoutError(AggregatorError):
    """The request deadline elapsed before any source settled."""
