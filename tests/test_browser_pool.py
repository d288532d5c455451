from __future__ import annotations

import asyncio
import os

import pytest

from shop_aggregator.engines import browser_pool
from shop_aggregator.engines.browser_pool import BrowserPool
from shop_aggregator.engines.executor import RetryingExecutor
from shop_aggregator.errors import BrowserLaunchError

from conftest import FakeBrowser, FakeLauncher, FakePage, FakeRoute


@pytest.mark.asyncio
async def test_browser_is_launched_once_and_lazily(pool, launcher):
    assert launcher.calls == 0
    assert not pool.started

    pages = await asyncio.gather(*(pool.acquire_page() for _ in range(3)))

    assert launcher.calls == 1
    assert pool.started
    assert pool.open_pages == 3
    assert len({id(p) for p in pages}) == 3


@pytest.mark.asyncio
async def test_pages_get_user_agent_viewport_and_blocking(pool, launcher, config):
    page = await pool.acquire_page()

    options = launcher.browser.contexts[0].options
    assert options["user_agent"] == config.user_agent
    assert options["viewport"] == {"width": 1920, "height": 1080}
    assert page.routes and page.routes[0][0] == "**/*"


@pytest.mark.asyncio
@pytest.mark.parametrize("resource_type, blocked", [
    ("image", True), ("stylesheet", True), ("font", True), ("media", True),
    ("document", False), ("script", False), ("xhr", False),
])
async def test_heavy_resources_are_aborted(pool, resource_type, blocked):
    route = FakeRoute(resource_type)
    await pool._block_heavy_resources(route)
    assert route.aborted is blocked
    assert route.continued is not blocked


@pytest.mark.asyncio
async def test_launch_failure_raises_browser_launch_error(config):
    pool = BrowserPool(config, launcher=FakeLauncher(error=RuntimeError("no chromium")))
    with pytest.raises(BrowserLaunchError):
        await pool.acquire_page()
    assert not pool.started


@pytest.mark.asyncio
async def test_release_swallows_close_errors(config):
    browser = FakeBrowser(lambda: FakePage(close_error=RuntimeError("already closed")))
    pool = BrowserPool(config, launcher=FakeLauncher(browser))
    page = await pool.acquire_page()

    await pool.release_page(page)

    assert pool.open_pages == 0
    assert page.context.closed


@pytest.mark.asyncio
async def test_scoped_page_is_released_on_error(pool, launcher):
    with pytest.raises(ValueError):
        async with pool.page():
            raise ValueError("parse failed")

    page = launcher.browser.pages[0]
    assert page.closed
    assert page.context.closed
    assert pool.open_pages == 0


@pytest.mark.asyncio
async def test_shutdown_is_idempotent(pool, launcher):
    await pool.acquire_page()

    await pool.shutdown()
    await pool.shutdown()

    assert launcher.browser.closed
    with pytest.raises(BrowserLaunchError):
        await pool.acquire_page()


@pytest.mark.asyncio
async def test_shutdown_without_launch_is_a_no_op(pool, launcher):
    await pool.shutdown()
    assert launcher.calls == 0


@pytest.mark.asyncio
async def test_crashed_browser_is_relaunched(config):
    browsers = []

    async def launch():
        browsers.append(FakeBrowser())
        return browsers[-1]

    pool = BrowserPool(config, launcher=launch)
    first = await pool.acquire_page()
    await pool.release_page(first)
    browsers[0].connected = False

    page = await pool.acquire_page()

    assert len(browsers) == 2
    assert page.context.browser is browsers[1]
    assert pool.open_pages == 1


@pytest.mark.asyncio
async def test_executor_recovers_after_browser_crash(config):
    browsers = []

    async def launch():
        browsers.append(FakeBrowser())
        return browsers[-1]

    pool = BrowserPool(config, launcher=launch)
    executor = RetryingExecutor(pool, max_retries=3, backoff_base=0.0, backoff_jitter=0.0)

    async def operation(page):
        return "ok"

    await executor.run(operation, "amazon")
    browsers[0].connected = False

    assert await executor.run(operation, "amazon") == "ok"
    assert len(browsers) == 2


def test_launch_leaves_playwright_browsers_path_alone(config, monkeypatch):
    monkeypatch.delenv("PLAYWRIGHT_BROWSERS_PATH", raising=False)

    BrowserPool(config)

    assert "PLAYWRIGHT_BROWSERS_PATH" not in os.environ
    assert not hasattr(browser_pool, "configure_browsers_path")
