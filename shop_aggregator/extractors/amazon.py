from __future__ import annotations

from urllib.parse import urlencode

from .base import StorefrontExtractor, attr, text
from ..models import SearchRequest
from ..utils.parsing import add_query_param, format_price, strip_query

AFFILIATE_TAG = "happyfestiveg-21"

_RESULTS = ".s-widget-container, [data-component-type='s-search-result']"


class AmazonExtractor(StorefrontExtractor):
    """Amazon India search results."""

    name = "amazon"
    origin = "https://www.amazon.in"
    ready_selector = _RESULTS
    candidate_selector = _RESULTS
    content_wait_ms = 10000
    fields = {
        "title": (text(".s-title-instructions-style", ".a-size-medium", "h2 a span", "h2 span"),),
        "price": (text(".a-price > span.a-offscreen", ".a-price-whole"),),
        "list_price": (
            text(".a-price.a-text-price > span.a-offscreen"),
            text("div.a-section.aok-inline-block > span > span.a-offscreen"),
        ),
        "rating": (
            text("i.a-icon-star-small span.a-icon-alt", "span.a-icon-alt"),
            attr("aria-label", "[aria-label*='out of 5 stars']"),
        ),
        "image": (attr("src", "img.s-image", ".s-product-image-container img"),),
        "link": (attr("href", "h2 a", "a.a-link-normal", ".s-product-image-container a"),),
        "deal_badge": (text(".a-badge-label", ".s-deal-badge"),),
    }

    def build_url(self, request: SearchRequest) -> str:
        params = {
            "k": request.term,
            "i": request.category or "",
            "low-price": "",
            "high-price": format_price(request.price_ceiling),
        }
        return f"{self.origin}/s?{urlencode(params)}"

    def affiliate_link(self, url: str) -> str:
        # Search-result links carry tracking parameters that are not needed.
        return add_query_param(strip_query(url), "tag", AFFILIATE_TAG)
