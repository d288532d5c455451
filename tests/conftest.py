"""Browser fakes shared by the test modules; no real Chromium is started."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from shop_aggregator.config import AggregatorConfig
from shop_aggregator.engines.browser_pool import BrowserPool


class FakeRoute:
    def __init__(self, resource_type: str) -> None:
        self.request = type("Req", (), {"resource_type": resource_type})()
        self.aborted = False
        self.continued = False

    async def abort(self) -> None:
        self.aborted = True

    async def continue_(self) -> None:
        self.continued = True


class FakePage:
    def __init__(
        self,
        html: str = "<html></html>",
        *,
        goto_error: Optional[BaseException] = None,
        selector_found: bool = True,
        close_error: Optional[BaseException] = None,
    ) -> None:
        self.html = html
        self.goto_error = goto_error
        self.selector_found = selector_found
        self.close_error = close_error
        self.context: Any = None
        self.visited: List[str] = []
        self.routes: List[Any] = []
        self.closed = False

    async def goto(self, url: str, **kwargs: Any) -> None:
        self.visited.append(url)
        if self.goto_error is not None:
            raise self.goto_error

    async def wait_for_selector(self, selector: str, timeout: Optional[int] = None) -> None:
        if not self.selector_found:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {selector}")

    async def content(self) -> str:
        return self.html

    async def route(self, pattern: str, handler: Callable[..., Any]) -> None:
        self.routes.append((pattern, handler))

    async def close(self) -> None:
        self.closed = True
        if self.close_error is not None:
            raise self.close_error


class FakeContext:
    def __init__(self, browser: "FakeBrowser", options: Dict[str, Any]) -> None:
        self.browser = browser
        self.options = options
        self.closed = False

    async def new_page(self) -> FakePage:
        page = self.browser.page_factory()
        page.context = self
        self.browser.pages.append(page)
        return page

    async def close(self) -> None:
        self.closed = True


class FakeBrowser:
    def __init__(self, page_factory: Callable[[], FakePage] | None = None) -> None:
        self.page_factory = page_factory or FakePage
        self.contexts: List[FakeContext] = []
        self.pages: List[FakePage] = []
        self.closed = False
        self.connected = True

    async def new_context(self, **options: Any) -> FakeContext:
        ctx = FakeContext(self, options)
        self.contexts.append(ctx)
        return ctx

    async def close(self) -> None:
        self.closed = True
        self.connected = False

    def is_connected(self) -> bool:
        return self.connected


class FakeLauncher:
    """Counts launches and hands back the same FakeBrowser."""

    def __init__(self, browser: FakeBrowser | None = None, error: Optional[BaseException] = None) -> None:
        self.browser = browser or FakeBrowser()
        self.error = error
        self.calls = 0

    async def __call__(self) -> FakeBrowser:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.browser


@pytest.fixture
def config(tmp_path) -> AggregatorConfig:
    return AggregatorConfig(
        output_path=str(tmp_path / "out" / "products.json"),
        backoff_base=0.0,
        backoff_jitter=0.0,
        request_deadline=5.0,
    )


@pytest.fixture
def launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture
def pool(config, launcher) -> BrowserPool:
    return BrowserPool(config, launcher=launcher)


AMAZON_HTML = """
<html><body>
<div data-component-type="s-search-result">
  <h2><a href="/Brand-X-Mouse/dp/B001?ref=sr_1_1"><span>Brand X Wireless Mouse</span></a></h2>
  <img class="s-image" src="https://m.media-amazon.com/images/x.jpg">
  <span class="a-price"><span class="a-offscreen">&#8377;1,299.00</span></span>
  <span class="a-price a-text-price"><span class="a-offscreen">&#8377;1,999.00</span></span>
  <span class="a-icon-alt">4.2 out of 5 stars</span>
  <span class="a-badge-label">Limited time deal</span>
</div>
<div data-component-type="s-search-result">
  <h2><a href="/Free-Thing/dp/B002"><span>Free Sticker</span></a></h2>
  <span class="a-price"><span class="a-offscreen">&#8377;0</span></span>
</div>
<div data-component-type="s-search-result">
  <h2><a href="/Brand-X-Mouse/dp/B003"><span>Brand X  wireless mouse</span></a></h2>
  <span class="a-price"><span class="a-offscreen">&#8377;999</span></span>
</div>
<div data-component-type="s-search-result">
  <h2><a href="/No-Price/dp/B004"><span>Mouse Pad</span></a></h2>
</div>
<div data-component-type="s-search-result">
  <h2><a href="/Gaming/dp/B005"><span>Gaming Mouse RGB</span></a></h2>
  <span class="a-price-whole">2,499.</span>
</div>
</body></html>
"""

MYNTRA_HTML = """
<html><body><ul>
<li class="product-base">
  <a data-refreshpage="true" href="mouse/logi/logi-m331-wireless-mouse/123/buy">
    <picture><source srcset="https://assets.myntassets.com/m331.jpg?w=300 1x"></picture>
    <div class="product-ratingsContainer" title="4.5 | 1.2k ratings"><span>4.5</span></div>
    <h3 class="product-brand">Logitech</h3>
    <h4 class="product-product">M331 Wireless Mouse</h4>
    <div class="product-price">
      <span class="product-discountedPrice">Rs. 1199</span>
      <span class="product-strike">Rs. 1995</span>
      <span class="product-discountPercentage">(40% OFF)</span>
    </div>
  </a>
</li>
<li class="product-base">
  <a data-refreshpage="true" href="mouse/hp/hp-x200/456/buy">
    <img class="img-responsive" src="https://assets.myntassets.com/x200.jpg">
    <h3 class="product-brand">HP</h3>
    <h4 class="product-product">X200 Mouse</h4>
    <div class="product-price"><span>Rs. 649</span></div>
  </a>
</li>
<li class="product-base">
  <h3 class="product-brand"></h3>
  <h4 class="product-product"></h4>
  <span class="product-discountedPrice">Rs. 500</span>
</li>
</ul></body></html>
"""


class StubExtractor:
    """Returns canned products (or raises) without reading the page."""

    def __init__(self, name: str, products=None, *, error: Exception | None = None, delay: float = 0.0) -> None:
        self.name = name
        self.products = products or []
        self.error = error
        self.delay = delay
        self.calls = 0

    def build_url(self, request) -> str:
        return f"https://{self.name}.example/s?q={request.term}"

    async def scrape(self, page, request):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.products)
