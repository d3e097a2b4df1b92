from __future__ import annotations

import argparse
import asyncio
import logging
from typing import List

from ..config import SyncConfig
from ..engines.pipeline import SyncReport, resolve_brands, run_sync
from ..errors import CatalogSyncError
from ..utils.logging import setup_logging
from ..utils.loader import load_store

logger = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Supplier catalog crawler")
    p.add_argument("brands", nargs="*", help="Brands to crawl (default: in-scope brands from the store)")
    p.add_argument("--config", type=str, help="Path to config JSON", default=None)
    p.add_argument("--url", type=str, default=None, help="Catalog base URL")
    p.add_argument("--email", type=str, default=None, help="Catalog login email")
    p.add_argument("--password", type=str, default=None, help="Catalog login password")
    p.add_argument("--supplier", type=str, default=None, help="Supplier key for the store's brand query")
    p.add_argument("--max-concurrency", type=int, default=None, help="Max concurrent page fetches")
    p.add_argument("--batch-size", type=int, default=None, help="Records per bulk write")
    p.add_argument("--store", type=str, default=None, help="Store dotted path (module:ClassName)")
    p.add_argument("--db-path", type=str, default=None, help="Output database path")
    p.add_argument("--table", type=str, default=None, help="Output table name")
    p.add_argument("--headed", action="store_true", help="Show the browser window during login")
    p.add_argument("--log-level", type=str, default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
    p.add_argument("--serve", action="store_true", help="Run REST API server instead of a CLI sync")
    p.add_argument("--host", type=str, default="127.0.0.1", help="API host (when --serve)")
    p.add_argument("--port", type=int, default=8000, help="API port (when --serve)")
    return p


def _load_config(args: argparse.Namespace) -> SyncConfig:
    if args.config:
        cfg = SyncConfig.from_file(args.config)
    else:
        cfg = SyncConfig.from_env()

    if args.brands:
        cfg.brands = list(args.brands)
    if args.url:
        cfg.base_url = args.url.rstrip("/")
    if args.email:
        cfg.email = args.email
    if args.password:
        cfg.password = args.password
    if args.supplier:
        cfg.supplier = args.supplier
    if args.max_concurrency is not None:
        cfg.max_concurrency = args.max_concurrency
    if args.batch_size is not None:
        cfg.batch_size = args.batch_size
    if args.store:
        cfg.store = args.store
    if args.db_path:
        cfg.db_path = args.db_path
    if args.table:
        cfg.table = args.table
    if args.headed:
        cfg.headless = False

    cfg.validate()
    return cfg


def run_server(host: str, port: int) -> None:
    import uvicorn

    uvicorn.run("catalog_crawler.apis.app:app", host=host, port=port)


def run_cli(argv: List[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    setup_logging(args.log_level)

    if args.serve:
        run_server(args.host, args.port)
        return 0

    try:
        cfg = _load_config(args)
        # Dynamic store loading so the output target can change without code edits.
        store = load_store(cfg.store, cfg)
    except (ValueError, ImportError) as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2

    try:
        brands = resolve_brands(cfg, store)
        report: SyncReport = asyncio.run(run_sync(cfg, store, brands))
    except CatalogSyncError as exc:
        logger.error("Sync failed during %s: %s", exc.stage, exc)
        return 1

    logger.info("Scrape complete! Saved %s products to %s (pages: %s, batches: %s).",
                report.total_records,
                cfg.table,
                report.pages_fetched,
                report.batches_written)
    return 0
