from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Protocol, Set, Tuple

from bs4 import BeautifulSoup, Tag
from playwright.async_api import Page, TimeoutError as PlaywrightTimeoutError

from ..errors import ElementParseError, NavigationTimeoutError, SelectorNotFoundError
from ..models import NO_LINK, NO_RATING, PLACEHOLDER_IMAGE, Product, SearchRequest
from ..utils.parsing import absolutize, normalize_title, parse_price
from ..utils.scoring import RelevanceScorer

logger = logging.getLogger(__name__)


class SourceExtractor(Protocol):
    """
    Interface for storefront-specific scraping logic.
    The executor owns the page lifecycle; extractors only drive and read it.
    """

    name: str

    def build_url(self, request: SearchRequest) -> str:
        ...

    async def scrape(self, page: Page, request: SearchRequest) -> List[Product]:
        """Navigate, wait for results, and return canonical products."""
        ...


@dataclass(frozen=True)
class FieldRule:
    """
    One way of reading a field out of a candidate element.

    Selectors are tried in order; the first node giving a non-empty value
    wins. An empty selector means the candidate element itself. With no
    attribute the node's text is read.
    """

    selectors: Tuple[str, ...]
    attribute: Optional[str] = None
    transform: Optional[Callable[[str], str]] = None

    def read(self, element: Tag) -> Optional[str]:
        for selector in self.selectors:
            node = element.select_one(selector) if selector else element
            if node is None:
                continue
            if self.attribute:
                raw = node.get(self.attribute)
                if isinstance(raw, list):
                    raw = " ".join(raw)
            else:
                raw = node.get_text(" ", strip=True)
            value = (raw or "").strip()
            if value and self.transform:
                value = self.transform(value).strip()
            if value:
                return value
        return None


FieldChain = Tuple[FieldRule, ...]


def first_match(element: Tag, chain: FieldChain) -> Optional[str]:
    for rule in chain:
        value = rule.read(element)
        if value:
            return value
    return None


def text(*selectors: str) -> FieldRule:
    return FieldRule(selectors=selectors)


def attr(attribute: str, *selectors: str, transform: Optional[Callable[[str], str]] = None) -> FieldRule:
    return FieldRule(selectors=selectors, attribute=attribute, transform=transform)


class StorefrontExtractor:
    """
    Shared pipeline for storefronts whose search page renders a list of
    product cards. Subclasses are mostly data: the result selectors, the
    field chains and the URL/link rules.

    Field names understood by the pipeline: title, price, list_price,
    rating, image, link, discount, deal_badge.
    """

    name: str = ""
    origin: str = ""
    # Presence of this selector means results have rendered.
    ready_selector: str = ""
    # Every match is one product card.
    candidate_selector: str = ""
    content_wait_ms: int = 10000
    fields: Mapping[str, FieldChain] = {}
    # Values used when a field chain finds nothing.
    defaults: Mapping[str, str] = {}

    def __init__(
        self,
        scorer: RelevanceScorer | None = None,
        *,
        navigation_timeout_ms: int = 30000,
        content_wait_ms: int | None = None,
    ) -> None:
        self.scorer = scorer or RelevanceScorer()
        self.navigation_timeout_ms = navigation_timeout_ms
        if content_wait_ms is not None:
            self.content_wait_ms = content_wait_ms

    # ---- URL rules ----------------------------------------------------------

    def build_url(self, request: SearchRequest) -> str:  # pragma: no cover - interface
        raise NotImplementedError

    def affiliate_link(self, url: str) -> str:
        return url

    def deep_link(self, href: Optional[str]) -> str:
        if not href or href.startswith(("#", "javascript:")):
            return NO_LINK
        return self.affiliate_link(absolutize(href, self.origin))

    # ---- Page driving -------------------------------------------------------

    async def scrape(self, page: Page, request: SearchRequest) -> List[Product]:
        url = self.build_url(request)
        logger.info("Scraping %s for %r: %s", self.name, request.term, url)
        try:
            await page.goto(url, wait_until="domcontentloaded", timeout=self.navigation_timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise NavigationTimeoutError(url, self.navigation_timeout_ms) from exc

        try:
            await self.wait_for_content(page)
        except SelectorNotFoundError as exc:
            # A slow or empty page is not a failure; read whatever rendered.
            logger.info("%s products container not found, continuing (%s)", self.name, exc)

        html = await page.content()
        products = self.extract(html, request)
        logger.info("%s found %s unique products", self.name, len(products))
        return products

    async def wait_for_content(self, page: Page) -> None:
        try:
            await page.wait_for_selector(self.ready_selector, timeout=self.content_wait_ms)
        except PlaywrightTimeoutError as exc:
            raise SelectorNotFoundError(self.ready_selector, self.content_wait_ms) from exc

    # ---- Markup parsing -----------------------------------------------------

    def extract(self, html: str, request: SearchRequest) -> List[Product]:
        soup = BeautifulSoup(html, "html.parser")
        products: List[Product] = []
        seen: Set[str] = set()
        for element in soup.select(self.candidate_selector):
            try:
                product = self.parse_candidate(element, request)
            except ElementParseError as exc:
                logger.debug("Error processing %s product: %s", self.name, exc)
                continue
            if product is None:
                continue
            key = normalize_title(product.title)
            if key in seen:
                continue
            seen.add(key)
            products.append(product)
        return products

    def read_fields(self, element: Tag) -> Dict[str, Optional[str]]:
        try:
            values = {name: first_match(element, chain) for name, chain in self.fields.items()}
        except Exception as exc:
            raise ElementParseError(f"could not read fields: {exc!r}") from exc
        for name, default in self.defaults.items():
            if not values.get(name):
                values[name] = default
        return values

    def compose_title(self, values: Mapping[str, Optional[str]]) -> Optional[str]:
        return values.get("title")

    def parse_candidate(self, element: Tag, request: SearchRequest) -> Optional[Product]:
        """
        Build a Product from one card, or None when the card is noise
        (no title, zero or unparsable price, above the price ceiling).
        """
        values = self.read_fields(element)
        title = self.compose_title(values)
        if not title:
            return None
        price = parse_price(values.get("price"))
        if price is None or price <= 0:
            return None
        if request.price_ceiling is not None and price > request.price_ceiling:
            return None

        list_price = parse_price(values.get("list_price"))
        if not list_price or list_price < price:
            list_price = price

        try:
            return Product(
                title=title,
                price=price,
                list_price=list_price,
                rating=values.get("rating") or NO_RATING,
                image_url=values.get("image") or PLACEHOLDER_IMAGE,
                deep_link=self.deep_link(values.get("link")),
                source=self.name,
                relevance_score=self.scorer.score(title, request.term, price),
                discount=values.get("discount"),
                deal_badge=values.get("deal_badge"),
            )
        except ValueError as exc:
            raise ElementParseError(str(exc)) from exc
