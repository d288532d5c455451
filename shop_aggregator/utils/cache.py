from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, NamedTuple, Optional, Sequence, Tuple

from ..models import Product, SearchRequest

logger = logging.getLogger(__name__)


class CacheKey(NamedTuple):
    source: str
    term: str
    price_ceiling: Optional[float]
    category: Optional[str]

    @classmethod
    def for_request(cls, source: str, request: SearchRequest) -> "CacheKey":
        # "Wireless  Mouse " and "wireless mouse" share an entry.
        term = " ".join(request.term.split()).lower()
        category = request.category.strip().lower() if request.category else None
        return cls(source=source, term=term, price_ceiling=request.price_ceiling, category=category or None)


@dataclass(frozen=True)
class CacheEntry:
    products: Tuple[Product, ...]
    expires_at: float


class ResultCache:
    """
    In-memory, process-lifetime memo of per-source results.

    Entries expire after their TTL; expired entries read as misses and are
    dropped on the spot, and purge_expired()/run_sweeper() clear the rest.
    Empty product lists are never stored.
    """

    def __init__(self, default_ttl: float = 300.0, clock: Callable[[], float] = time.monotonic) -> None:
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[CacheKey, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: CacheKey) -> Optional[Tuple[Product, ...]]:
        """Return the cached products, or None on a miss."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            del self._entries[key]
            return None
        return entry.products

    def set(self, key: CacheKey, products: Sequence[Product], ttl: float | None = None) -> bool:
        """Store products under key. Returns False (and stores nothing) for an empty list."""
        if not products:
            return False
        ttl = self.default_ttl if ttl is None else ttl
        self._entries[key] = CacheEntry(products=tuple(products), expires_at=self._clock() + ttl)
        return True

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [k for k, e in self._entries.items() if e.expires_at <= now]
        for k in expired:
            del self._entries[k]
        return len(expired)

    async def run_sweeper(self, interval: float) -> None:
        """Purge expired entries every `interval` seconds until cancelled."""
        while True:
            await asyncio.sleep(interval)
            removed = self.purge_expired()
            if removed:
                logger.debug("Cache sweep removed %s expired entries", removed)
