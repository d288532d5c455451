from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from typing import List

from ..config import AggregatorConfig
from ..engines.aggregator import build_aggregator
from ..engines.base import AggregationResult
from ..errors import AggregatorError, ValidationError
from ..export.base import exporter_for
from ..utils.logging import setup_logging

logger = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Search several storefronts at once and merge the results")
    p.add_argument("term", nargs="*", help="Search term (words are joined with spaces)")
    p.add_argument("--max-price", type=str, default=None, help="Price ceiling")
    p.add_argument("--category", type=str, default=None, help="Storefront category filter")
    p.add_argument("--config", type=str, help="Path to config JSON", default=None)
    p.add_argument("--sources", type=str, default=None,
                   help="Comma-separated storefronts to query (default from config)")
    p.add_argument("--max-concurrency", type=int, default=None, help="Max simultaneous scrapes (default from config)")
    p.add_argument("--deadline", type=float, default=None, help="Overall request deadline in seconds")
    p.add_argument("--output", type=str, default=None, help="Output file path (.json or .csv)")
    p.add_argument("--log-level", type=str, default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
    p.add_argument("--serve", action="store_true", help="Run REST API server instead of a one-off search")
    p.add_argument("--host", type=str, default="127.0.0.1", help="API host (when --serve)")
    p.add_argument("--port", type=int, default=4000, help="API port (when --serve)")
    return p


def _load_config(args: argparse.Namespace) -> AggregatorConfig:
    if args.config:
        cfg = AggregatorConfig.from_file(args.config)
    else:
        cfg = AggregatorConfig.from_env()

    if args.sources:
        cfg.sources = [s.strip() for s in args.sources.split(",") if s.strip()]
    if args.max_concurrency is not None:
        cfg.max_concurrency = args.max_concurrency
    if args.deadline is not None:
        cfg.request_deadline = args.deadline
    if args.output:
        cfg.output_path = args.output

    cfg.validate()
    return cfg


def run_server(host: str, port: int) -> None:
    try:
        import uvicorn  # type: ignore
    except Exception as exc:  # pragma: no cover - optional dep
        raise SystemExit("To run the API, install dependencies: pip install fastapi uvicorn pydantic") from exc
    uvicorn.run("shop_aggregator.apis.app:app", host=host, port=port)


async def _search(cfg: AggregatorConfig, term: str, max_price: str | None, category: str | None) -> AggregationResult:
    aggregator = build_aggregator(cfg)
    loop = asyncio.get_running_loop()
    current = asyncio.current_task()
    try:
        # SIGTERM unwinds through the finally below so the browser is closed.
        loop.add_signal_handler(signal.SIGTERM, current.cancel)
    except (NotImplementedError, RuntimeError):
        pass  # Windows event loops have no signal handlers
    try:
        return await aggregator.search_products(term, max_price, category)
    finally:
        await aggregator.pool.shutdown()


def _summarize(result: AggregationResult) -> None:
    for source, ok in result.sources.items():
        status = "ok" if ok else f"failed ({result.errors.get(source, 'unknown error')})"
        print(f"{source:<10} {result.source_counts.get(source, 0):>4} products  {status}")
    for product in result.products[:10]:
        print(f"  {product.relevance_score:6.1f}  {product.price:>10.2f}  [{product.source}] {product.title}")
    print(f"{result.total} products in {result.response_time_ms} ms")


def run_cli(argv: List[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    if args.serve:
        run_server(args.host, args.port)
        return 0

    if not args.term:
        parser.error("a search term is required unless --serve is given")

    cfg = _load_config(args)
    try:
        result = asyncio.run(_search(cfg, " ".join(args.term), args.max_price, args.category))
    except ValidationError as exc:
        logger.error("Invalid search: %s", exc)
        return 2
    except AggregatorError as exc:
        logger.error("Search failed: %s", exc)
        return 1
    except asyncio.CancelledError:
        logger.warning("Search cancelled by signal")
        return 143

    exporter = exporter_for(cfg.output_path)
    exporter.export(result, cfg.output_path)
    _summarize(result)

    logger.info("Products: %s | Sources: %s | Output: %s",
                result.total,
                ", ".join(f"{k}={'ok' if v else 'failed'}" for k, v in result.sources.items()),
                cfg.output_path)
    return 0
