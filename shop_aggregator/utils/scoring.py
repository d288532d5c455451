from __future__ import annotations

from typing import Tuple

from ..models import Product

TERM_HIT_POINTS = 10.0
PHRASE_HIT_POINTS = 20.0
DEFAULT_REFERENCE_PRICE = 1000.0
PRICE_PROXIMITY_POINTS = 10.0


class RelevanceScorer:
    """
    Heuristic ranking signal for a product title against the query.

    Each whitespace-separated query word found in the title earns
    TERM_HIT_POINTS, the whole phrase earns PHRASE_HIT_POINTS on top, and a
    price bonus of up to PRICE_PROXIMITY_POINTS peaks at the reference price
    and falls off linearly, reaching zero one reference-price away.
    """

    def __init__(self, reference_price: float = DEFAULT_REFERENCE_PRICE) -> None:
        if reference_price <= 0:
            raise ValueError("reference_price must be > 0")
        self.reference_price = reference_price

    def score(self, title: str, term: str, price: float) -> float:
        haystack = title.lower()
        phrase = " ".join(term.lower().split())

        points = sum(TERM_HIT_POINTS for word in phrase.split() if word in haystack)
        if phrase and phrase in haystack:
            points += PHRASE_HIT_POINTS
        return points + self.price_proximity(price)

    def price_proximity(self, price: float) -> float:
        distance = abs(price - self.reference_price) / self.reference_price
        return max(0.0, PRICE_PROXIMITY_POINTS * (1.0 - distance))


def ranking_key(product: Product) -> Tuple[float, float]:
    """Sort key: best score first, cheaper first on ties."""
    return (-product.relevance_score, product.price)
