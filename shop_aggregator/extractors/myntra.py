from __future__ import annotations

from typing import Mapping, Optional
from urllib.parse import quote, urlencode

from .base import StorefrontExtractor, attr, text
from ..models import SearchRequest
from ..utils.parsing import format_price

AFFILIATE_REDIRECT = "https://linkredirect.in/visitretailer/2468"
AFFILIATE_PARAMS = {"id": "4620459", "shareid": "rol1uA1"}


def _srcset_url(srcset: str) -> str:
    return srcset.split("?")[0].split(" ")[0]


class MyntraExtractor(StorefrontExtractor):
    """Myntra search results; titles are brand plus product name."""

    name = "myntra"
    origin = "https://www.myntra.com"
    ready_selector = "li.product-base"
    candidate_selector = "li.product-base"
    content_wait_ms = 15000
    fields = {
        "brand": (text(".product-brand"),),
        "title": (text(".product-product"),),
        "price": (text(".product-discountedPrice", ".product-price"),),
        "list_price": (text(".product-strike"),),
        "discount": (text(".product-discountPercentage"),),
        "rating": (
            attr("title", ".product-ratingsContainer"),
            text(".product-ratingsContainer > span"),
        ),
        "image": (
            attr("src", "img.img-responsive"),
            attr("srcset", "source", transform=_srcset_url),
        ),
        "link": (attr("href", "a[data-refreshpage='true']", "a[href]"),),
    }
    defaults = {"discount": "0% off"}

    def build_url(self, request: SearchRequest) -> str:
        slug = quote(request.term.lower().replace(" ", "-"))
        url = f"{self.origin}/{slug}?rawQuery={slug}"
        if request.price_ceiling is not None:
            url += f"&price=0-{format_price(request.price_ceiling)}"
        return url

    def compose_title(self, values: Mapping[str, Optional[str]]) -> Optional[str]:
        parts = [values.get("brand"), values.get("title")]
        return " ".join(p for p in parts if p) or None

    def affiliate_link(self, url: str) -> str:
        return f"{AFFILIATE_REDIRECT}?{urlencode({**AFFILIATE_PARAMS, 'dl': url})}"
