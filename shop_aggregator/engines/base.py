from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from abc import ABC, abstractmethod

from ..models import Product, SearchRequest


class OutcomeStatus(str, Enum):
    FULFILLED = "fulfilled"
    FAILED = "failed"


@dataclass(frozen=True)
class SourceOutcome:
    """How one storefront fared for one request."""

    source: str
    status: OutcomeStatus
    products: Tuple[Product, ...] = ()
    error: Optional[str] = None
    from_cache: bool = False

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.FULFILLED

    @classmethod
    def fulfilled(cls, source: str, products: List[Product], *, from_cache: bool = False) -> "SourceOutcome":
        return cls(source=source, status=OutcomeStatus.FULFILLED, products=tuple(products), from_cache=from_cache)

    @classmethod
    def failed(cls, source: str, error: str) -> "SourceOutcome":
        return cls(source=source, status=OutcomeStatus.FAILED, error=error)


@dataclass
class AggregationResult:
    products: List[Product] = field(default_factory=list)
    outcomes: List[SourceOutcome] = field(default_factory=list)
    response_time_ms: int = 0

    @property
    def total(self) -> int:
        return len(self.products)

    @property
    def sources(self) -> Dict[str, bool]:
        return {o.source: o.ok for o in self.outcomes}

    @property
    def source_counts(self) -> Dict[str, int]:
        return {o.source: len(o.products) for o in self.outcomes}

    @property
    def errors(self) -> Dict[str, str]:
        return {o.source: o.error for o in self.outcomes if o.error}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "products": [p.to_dict() for p in self.products],
            "total": self.total,
            "sources": self.sources,
            "sourceCounts": self.source_counts,
            "responseTimeMs": self.response_time_ms,
        }


class AggregationEngine(ABC):
    """
    Abstract engine interface. Implementations own the fan-out lifecycle.
    """
    @abstractmethod
    async def aggregate(self, request: SearchRequest) -> AggregationResult:  # pragma: no cover - interface
        ...
