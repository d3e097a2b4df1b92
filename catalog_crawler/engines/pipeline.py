from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from aiohttp import ClientSession

from .base import RunContext
from .browser_engine import SessionCredentials, login_with_config
from .catalog_engine import CatalogCrawlEngine
from ..adapters.directory import build_directory
from ..adapters.extractor import CatalogExtractor
from ..config import SyncConfig
from ..errors import BrandLookupError
from ..export.base import RecordStore
from ..export.sink import BatchSink
from ..utils.http import create_session

logger = logging.getLogger(__name__)

LoginFn = Callable[[SyncConfig], Awaitable[SessionCredentials]]
SessionFactory = Callable[[Dict[str, str]], ClientSession]


@dataclass
class SyncReport:
    total_records: int = 0
    records_by_brand: Dict[str, int] = field(default_factory=dict)
    failed_brands: List[str] = field(default_factory=list)
    pages_fetched: int = 0
    batches_written: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_records": self.total_records,
            "records_by_brand": dict(self.records_by_brand),
            "failed_brands": list(self.failed_brands),
            "pages_fetched": self.pages_fetched,
            "batches_written": self.batches_written,
        }


def resolve_brands(config: SyncConfig, store: RecordStore) -> List[str]:
    if config.brands:
        return list(config.brands)
    try:
        brands = store.load_brands(config.supplier)
    except Exception as exc:
        raise BrandLookupError(f"Could not load brands for supplier {config.supplier}: {exc}") from exc
    logger.info("Found %s in-scope brands for supplier %s.", len(brands), config.supplier)
    return brands


async def run_sync(
    config: SyncConfig,
    store: RecordStore,
    brands: List[str],
    *,
    login: LoginFn = login_with_config,
    session_factory: SessionFactory = create_session,
    extractor: Optional[CatalogExtractor] = None,
) -> SyncReport:
    """
    Log in, resolve brand categories, crawl every brand and persist the records.

    Authentication, directory and sink failures propagate as CatalogSyncError
    subclasses; per-brand fetch failures only show up in `failed_brands`.
    """
    if not brands:
        logger.warning("No brands to crawl; nothing to do.")
        return SyncReport()

    credentials = await login(config)

    http = session_factory(credentials.headers)
    try:
        directory = await build_directory(http, config)
        await asyncio.to_thread(store.prepare)

        sink = BatchSink(store, batch_size=config.batch_size)
        context = RunContext(
            config=config,
            credentials=credentials,
            http=http,
            directory=directory,
            sink=sink,
        )
        engine = CatalogCrawlEngine(context, extractor=extractor)
        logger.info("Starting catalog crawl for %s brands", len(brands))
        crawl = await engine.crawl(brands)
        await sink.flush()
    finally:
        await http.close()

    report = SyncReport(
        total_records=sink.total_written,
        records_by_brand=crawl.records_by_brand,
        failed_brands=crawl.failed_brands,
        pages_fetched=crawl.pages_fetched,
        batches_written=sink.batches_written,
    )
    if report.failed_brands:
        logger.warning("Brands abandoned after fetch failures: %s", ", ".join(report.failed_brands))
    return report
