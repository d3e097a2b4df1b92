from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Set

from .base import CrawlEngine, CrawlReport, CrawlState, CrawlTask, RunContext
from ..adapters.directory import normalize_brand
from ..adapters.extractor import CatalogExtractor
from ..errors import PageFetchError
from ..utils.http import fetch_text
from ..utils.parsing import normalize_url, search_url, with_query

logger = logging.getLogger(__name__)


@dataclass
class _QueueItem:
    task: CrawlTask
    url: str


class CatalogCrawlEngine(CrawlEngine):
    """
    Brand-by-brand catalog crawler.
    - Engine owns HTTP, queueing and the per-brand state machine.
    - Extractor owns page parsing.
    - Concurrency capped by the size of the worker pool.

    Each brand has at most one page in the queue at a time: the next page is
    only enqueued after the current one is parsed, so a brand's pages are
    processed in order while different brands run concurrently.
    """
    def __init__(self, context: RunContext, extractor: CatalogExtractor | None = None) -> None:
        self.context = context
        self.extractor = extractor or CatalogExtractor()

    # ---- Seeding ----

    def search_url(self, brand: str) -> str:
        cfg = self.context.config
        return search_url(cfg.base_url, cfg.search_path, brand, cfg.per_page)

    def seed(self, brand: str) -> _QueueItem:
        category_url = self.context.directory.lookup(brand)
        if category_url:
            url = with_query(category_url, per_page=self.context.config.per_page)
            return _QueueItem(task=CrawlTask(brand), url=url)
        # No dedicated category: search straight away, with no further fallback.
        return _QueueItem(task=CrawlTask(brand, state=CrawlState.SEARCH_FALLBACK), url=self.search_url(brand))

    # ---- Crawl ----

    async def crawl(self, brands: List[str]) -> CrawlReport:
        report = CrawlReport()
        q: asyncio.Queue[_QueueItem] = asyncio.Queue()

        seen: Set[str] = set()
        for brand in brands:
            key = normalize_brand(brand)
            if not key or key in seen:
                continue
            seen.add(key)
            item = self.seed(brand)
            report.tasks[brand] = item.task
            q.put_nowait(item)

        if q.empty():
            return report

        async def worker() -> None:
            while True:
                item = await q.get()
                try:
                    await self._process(item, q, report)
                finally:
                    q.task_done()

        workers = [asyncio.create_task(worker()) for _ in range(self.context.config.max_concurrency)]
        joiner = asyncio.create_task(q.join())
        try:
            # Workers only stop by raising, so a finished worker means a fatal error.
            await asyncio.wait({joiner, *workers}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for t in (joiner, *workers):
                t.cancel()
            await asyncio.gather(joiner, *workers, return_exceptions=True)

        for t in workers:
            if not t.cancelled() and t.exception() is not None:
                raise t.exception()
        return report

    async def _process(self, item: _QueueItem, q: "asyncio.Queue[_QueueItem]", report: CrawlReport) -> None:
        task = item.task
        cfg = self.context.config
        url = normalize_url(item.url)

        if url in task.visited:
            logger.debug("Pagination for %s loops back to %s; stopping", task.brand, url)
            task.finish()
            return
        task.visited.add(url)

        logger.info("Processing: %s [%s, %s]", url, task.brand, task.state.value)
        try:
            html = await fetch_text(
                self.context.http,
                url,
                timeout=cfg.request_timeout,
                retries=cfg.retries,
                backoff=cfg.retry_backoff,
            )
        except PageFetchError as exc:
            logger.warning("Abandoning brand %s: %s", task.brand, exc)
            task.finish(error=str(exc))
            return

        task.pages += 1
        report.pages_fetched += 1
        result = self.extractor.extract(html, url, task.brand)

        if result.no_products:
            if task.state is CrawlState.LISTING:
                task.fall_back()
                logger.info("No products in category for %s; falling back to search", task.brand)
                await q.put(_QueueItem(task=task, url=self.search_url(task.brand)))
            else:
                logger.info("No products found for %s", task.brand)
                task.finish()
            return

        if result.records:
            await self.context.sink.push_many(result.records)
            task.records += len(result.records)

        if result.next_url:
            await q.put(_QueueItem(task=task, url=result.next_url))
        else:
            task.finish()
