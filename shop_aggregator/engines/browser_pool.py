from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, FrozenSet, Optional

from playwright.async_api import Browser, Page, Playwright, Route, async_playwright

from ..config import AggregatorConfig
from ..errors import BrowserLaunchError

logger = logging.getLogger(__name__)


LAUNCH_ARGS = ["--no-sandbox", "--disable-setuid-sandbox", "--disable-dev-shm-usage"]

Launcher = Callable[[], Awaitable[Any]]


class BrowserPool:
    """
    Owns the single headless browser shared by every scrape and lends out pages.

    The browser is launched lazily on the first acquire_page() and lives until
    shutdown(). Each page gets its own context so the user agent and viewport
    are fixed per page, and heavy resource types are aborted at the network
    layer. Use `async with pool.page() as page:` so the page is released on
    every exit path.
    """

    def __init__(self, config: AggregatorConfig | None = None, launcher: Launcher | None = None) -> None:
        self.config = config or AggregatorConfig()
        self._launcher = launcher or self._launch_chromium
        self._blocked: FrozenSet[str] = frozenset(t.strip().lower() for t in self.config.blocked_resource_types)
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._lock = asyncio.Lock()
        self._closed = False
        self.open_pages = 0

    @property
    def started(self) -> bool:
        return self._browser is not None

    async def _launch_chromium(self) -> Browser:
        self._playwright = await async_playwright().start()
        return await self._playwright.chromium.launch(headless=self.config.headless, args=LAUNCH_ARGS)

    async def _ensure_browser(self) -> Browser:
        if self._closed:
            raise BrowserLaunchError("browser pool has been shut down")
        async with self._lock:
            if self._browser is not None and not self._browser.is_connected():
                logger.warning("Headless browser disconnected; relaunching")
                self._browser = None
                await self._stop_playwright()
            if self._browser is None:
                logger.info("Launching headless browser")
                try:
                    self._browser = await self._launcher()
                except Exception as exc:
                    await self._stop_playwright()
                    raise BrowserLaunchError(f"could not launch browser: {exc}") from exc
            return self._browser

    async def acquire_page(self) -> Page:
        browser = await self._ensure_browser()
        context = await browser.new_context(
            user_agent=self.config.user_agent,
            viewport={"width": self.config.viewport_width, "height": self.config.viewport_height},
        )
        try:
            page = await context.new_page()
            if self._blocked:
                await page.route("**/*", self._block_heavy_resources)
        except BaseException:
            await context.close()
            raise
        self.open_pages += 1
        return page

    async def release_page(self, page: Page) -> None:
        """Close the page and its context. Never raises."""
        self.open_pages -= 1
        context = page.context
        try:
            await page.close()
        except Exception as exc:
            logger.warning("Error closing page: %s", exc)
        try:
            await context.close()
        except Exception as exc:
            logger.warning("Error closing browser context: %s", exc)

    @asynccontextmanager
    async def page(self) -> AsyncIterator[Page]:
        page = await self.acquire_page()
        try:
            yield page
        finally:
            await self.release_page(page)

    async def _block_heavy_resources(self, route: Route) -> None:
        if route.request.resource_type in self._blocked:
            await route.abort()
        else:
            await route.continue_()

    async def shutdown(self) -> None:
        """Close the browser. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        async with self._lock:
            browser, self._browser = self._browser, None
            if browser is not None:
                logger.info("Closing headless browser")
                try:
                    await browser.close()
                except Exception as exc:
                    logger.warning("Error closing browser: %s", exc)
            await self._stop_playwright()

    async def _stop_playwright(self) -> None:
        pw, self._playwright = self._playwright, None
        if pw is not None:
            try:
                await pw.stop()
            except Exception as exc:
                logger.warning("Error stopping playwright: %s", exc)
