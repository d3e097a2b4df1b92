from __future__ import annotations

import logging
from typing import Dict, Iterator, Mapping, Optional

from aiohttp import ClientSession
from bs4 import BeautifulSoup

from ..config import SyncConfig
from ..errors import DirectoryFetchError, PageFetchError
from ..utils.http import fetch_text
from ..utils.parsing import absolute_url, text_of

logger = logging.getLogger(__name__)

BRAND_LINK_SELECTOR = ".card-product-title"


class BrandDirectory(Mapping[str, str]):
    """
    Read-only map of lower-cased brand name to its category URL.
    A brand missing from the directory is a normal outcome; it is crawled via search instead.
    """
    def __init__(self, entries: Optional[Dict[str, str]] = None) -> None:
        self._entries: Dict[str, str] = {}
        for name, url in (entries or {}).items():
            self._entries[normalize_brand(name)] = url

    def lookup(self, brand: str) -> Optional[str]:
        return self._entries.get(normalize_brand(brand))

    def __getitem__(self, brand: str) -> str:
        return self._entries[normalize_brand(brand)]

    def __contains__(self, brand: object) -> bool:
        return isinstance(brand, str) and normalize_brand(brand) in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


def normalize_brand(name: str) -> str:
    return name.strip().lower()


def parse_directory(html: str, base_url: str) -> BrandDirectory:
    """
    Extract (brand, category link) pairs from the directory page.
    Later duplicates overwrite earlier ones.
    """
    soup = BeautifulSoup(html, "html.parser")
    entries: Dict[str, str] = {}
    for anchor in soup.select(BRAND_LINK_SELECTOR):
        name = text_of(anchor)
        href = anchor.get("href")
        if not name or not href:
            continue
        entries[normalize_brand(name)] = absolute_url(base_url, href)
    return BrandDirectory(entries)


async def build_directory(session: ClientSession, config: SyncConfig) -> BrandDirectory:
    logger.info("Fetching brand category directory from %s", config.directory_url)
    try:
        html = await fetch_text(
            session,
            config.directory_url,
            timeout=config.request_timeout,
            retries=config.retries,
            backoff=config.retry_backoff,
        )
    except PageFetchError as exc:
        raise DirectoryFetchError(f"Brand directory unavailable: {exc}") from exc

    directory = parse_directory(html, config.base_url)
    logger.info("Found %s brands in the category directory.", len(directory))
    return directory
