from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

NO_RATING = "No rating"
PLACEHOLDER_IMAGE = "https://images.unsplash.com/photo-1513475382585-d06e58bcb0e0?w=300&h=300&fit=crop"
NO_LINK = "#"


@dataclass(frozen=True)
class SearchRequest:
    """A validated, normalized search. Build it with utils.validation.validate_search_params."""

    term: str
    price_ceiling: Optional[float] = None
    category: Optional[str] = None


@dataclass(frozen=True)
class Product:
    """Canonical product record shared by every storefront."""

    title: str
    price: float
    source: str
    list_price: Optional[float] = None
    rating: str = NO_RATING
    image_url: str = PLACEHOLDER_IMAGE
    deep_link: str = NO_LINK
    relevance_score: float = 0.0
    discount: Optional[str] = None
    deal_badge: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.title:
            raise ValueError("Product title cannot be empty")
        if self.price < 0:
            raise ValueError("Product price must be >= 0")
        if self.list_price is None:
            object.__setattr__(self, "list_price", self.price)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "title": self.title,
            "price": self.price,
            "listPrice": self.list_price,
            "rating": self.rating,
            "imageUrl": self.image_url,
            "deepLink": self.deep_link,
            "source": self.source,
            "relevanceScore": self.relevance_score,
            "discount": self.discount,
            "dealBadge": self.deal_badge,
        }
        # Optional storefront extras are dropped when unset.
        return {k: v for k, v in data.items() if v is not None}
