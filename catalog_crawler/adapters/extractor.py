from __future__ import annotations

import logging
from typing import Optional, Sequence

from bs4 import BeautifulSoup

from .base import PageResult
from .registry import LayoutRegistry
from ..utils.parsing import absolute_url, text_of

logger = logging.getLogger(__name__)

NO_PRODUCTS_SELECTOR = ".alert-danger"
NO_PRODUCTS_TEXT = "no products available"
PAGINATION_SELECTORS: Sequence[str] = (
    '.pagination a[rel="next"]',
    ".next_page a",
    "a.next_page",
)


class CatalogExtractor:
    """
    Turns one fetched listing or search page into a PageResult.
    The engine owns HTTP and queueing; this class only reads markup.
    """
    def __init__(self, registry: LayoutRegistry | None = None) -> None:
        if registry is None:
            registry = LayoutRegistry()
            registry.discover_entry_points()
        self.registry = registry

    def extract(self, html: str, base_url: str = "", brand: str = "") -> PageResult:
        soup = BeautifulSoup(html, "html.parser")

        if has_no_products_signal(soup):
            return PageResult(no_products=True)

        result = PageResult(next_url=find_next_page(soup, base_url))
        layout, rows = self.registry.match(soup)
        if layout is None:
            return result

        result.layout = layout.name
        for row in rows:
            record = layout.parse_row(row, brand)
            if record is None:
                result.dropped += 1
                continue
            result.records.append(record)

        if result.dropped:
            logger.debug("Dropped %s incomplete %s rows on %s", result.dropped, layout.name, base_url)
        return result


def has_no_products_signal(soup: BeautifulSoup) -> bool:
    return any(NO_PRODUCTS_TEXT in text_of(node).lower() for node in soup.select(NO_PRODUCTS_SELECTOR))


def find_next_page(soup: BeautifulSoup, base_url: str) -> Optional[str]:
    for selector in PAGINATION_SELECTORS:
        node = soup.select_one(selector)
        if node is None:
            continue
        href = node.get("href")
        if href:
            return absolute_url(base_url, href)
    return None
