from __future__ import annotations

from contextlib import asynccontextmanager, suppress
from typing import Any, AsyncIterator, Dict, Optional, Union
import asyncio
import logging
import time

try:
    from fastapi import FastAPI, Request
    from fastapi.middleware.cors import CORSMiddleware
    from fastapi.responses import JSONResponse
    from pydantic import BaseModel
except Exception as exc:  # pragma: no cover - import guard
    raise RuntimeError(
        "FastAPI not installed. Install with `pip install fastapi pydantic uvicorn` "
        "or avoid using the API server."
    ) from exc

from ..config import AggregatorConfig
from ..engines.aggregator import ProductAggregator, build_aggregator
from ..errors import AggregateTimeoutError, ValidationError
from ..version import __version__

logger = logging.getLogger(__name__)


class ScrapeRequest(BaseModel):
    search: str = ""
    category: str = ""
    highprice: Optional[Union[float, str]] = None


def create_app(
    config: AggregatorConfig | None = None,
    aggregator: ProductAggregator | None = None,
) -> FastAPI:
    """
    Build the API. The aggregator (and with it the shared browser) is created
    when the app starts and the browser is shut down when it stops, which is
    where uvicorn lands on SIGINT/SIGTERM.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        cfg = config or (aggregator.config if aggregator else AggregatorConfig.from_env())
        cfg.validate()
        agg = aggregator or build_aggregator(cfg)
        app.state.aggregator = agg
        sweeper = asyncio.create_task(agg.cache.run_sweeper(cfg.cache_sweep_interval))
        try:
            yield
        finally:
            sweeper.cancel()
            with suppress(asyncio.CancelledError):
                await sweeper
            await agg.pool.shutdown()

    app = FastAPI(title="shop_aggregator API", version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(404)
    async def not_found(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=404, content={"error": "Not Found"})

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {"status": "ok", "timestamp": int(time.time() * 1000)}

    @app.get("/api/v1/products/scrape")
    async def scrape_get(
        request: Request,
        search: str = "",
        category: str = "",
        highprice: str = "",
    ) -> JSONResponse:
        return await _scrape(request.app.state.aggregator, search, highprice, category)

    @app.post("/api/v1/products/scrape")
    async def scrape_post(request: Request, body: ScrapeRequest) -> JSONResponse:
        return await _scrape(request.app.state.aggregator, body.search, body.highprice, body.category)

    return app


async def _scrape(aggregator: ProductAggregator, search: str, highprice: Any, category: str) -> JSONResponse:
    try:
        result = await aggregator.search_products(search, highprice, category)
    except ValidationError as exc:
        return JSONResponse(status_code=400, content={"success": False, "error": str(exc)})
    except AggregateTimeoutError as exc:
        logger.error("Scrape timed out: %s", exc)
        return JSONResponse(status_code=504, content={"success": False, "error": str(exc), "data": []})
    except Exception as exc:
        logger.exception("Scrape controller error")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": str(exc) or "Error scraping products", "data": []},
        )

    payload = result.to_dict()
    products = payload.pop("products")
    return JSONResponse(content={"success": True, "products": products, "metadata": payload})


app = create_app()
