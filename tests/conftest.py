"""
Pytest fixtures and in-process fakes for the catalog crawler.
Network and browser are never touched: pages come from dicts, logins are canned.
"""
import threading
import types
from typing import Dict, List, Optional, Sequence, Union

import aiohttp
import pytest

from catalog_crawler.adapters.base import ExtractedRecord
from catalog_crawler.config import SyncConfig
from catalog_crawler.engines.browser_engine import SessionCredentials

BASE_URL = "https://shop.test"
DIRECTORY_URL = BASE_URL + "/products/list?category=7"


# ---------------------------------------------------------------------------
# HTML builders
# ---------------------------------------------------------------------------

NO_PRODUCTS_PAGE = """
<html><body>
  <div class="alert alert-danger">Sorry, there are no products available for this search.</div>
</body></html>
"""


def table_row(name, sku, price=None, qty=None, price_text=None, qty_max=None):
    price_attr = f' data-price="{price}"' if price is not None else ""
    shown_price = price_text if price_text is not None else (f"£{price}" if price is not None else "")
    qty_cell = f"{qty} in stock" if qty is not None else ""
    qty_input = f'<input name="quantity" type="number" min="0" max="{qty_max}">' if qty_max is not None else ""
    return f"""
    <tr>
      <td class="product-title"><a href="/products/{sku}">{name}</a></td>
      <td class="line-item code"><a href="/products/{sku}">Code: {sku}</a></td>
      <td class="price-col"><span class="price"{price_attr}>{shown_price}</span></td>
      <td class="avl-qty">{qty_cell}</td>
      <td>{qty_input}</td>
    </tr>
    <tr class="second-row">
      <td class="product-title"><a href="#">{name} (details)</a></td>
      <td class="line-item code"><a href="#">Code: {sku}-detail</a></td>
    </tr>
    """


def table_page(rows: Sequence[str], next_href: Optional[str] = None) -> str:
    pagination = ""
    if next_href:
        pagination = f'<ul class="pagination"><li><a rel="next" href="{next_href}">Next</a></li></ul>'
    return f"""
    <html><body>
      <table class="preferred-products">
        <thead><tr><th>Product</th><th>Code</th><th>Price</th><th>Qty</th></tr></thead>
        <tbody>{"".join(rows)}</tbody>
      </table>
      {pagination}
    </body></html>
    """


def card(name, sku, price_text="", stock_text="", price_attr=None):
    attr = f' data-price="{price_attr}"' if price_attr is not None else ""
    return f"""
    <div class="card-product">
      <a class="card-product-title" href="/products/{sku}">{name}</a>
      <div class="product-code">SKU: {sku}</div>
      <span class="price"{attr}>{price_text}</span>
      <span class="in-stock">{stock_text}</span>
    </div>
    """


def card_page(cards: Sequence[str], next_href: Optional[str] = None) -> str:
    pagination = f'<div class="next_page"><a href="{next_href}">Next →</a></div>' if next_href else ""
    return f'<html><body><div class="grid">{"".join(cards)}</div>{pagination}</body></html>'


def directory_page(entries: Dict[str, str]) -> str:
    links = "".join(
        f'<div class="card-product"><a class="card-product-title" href="{href}">{name}</a></div>'
        for name, href in entries.items()
    )
    return f"<html><body>{links}</body></html>"


# ---------------------------------------------------------------------------
# Fake HTTP session (aiohttp-compatible subset)
# ---------------------------------------------------------------------------

class FakeResponse:
    def __init__(self, url: str, body: str = "", status: int = 200) -> None:
        self.url = url
        self.body = body
        self.status = status

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def raise_for_status(self) -> None:
        if self.status >= 400:
            raise aiohttp.ClientResponseError(
                request_info=types.SimpleNamespace(real_url=self.url),
                history=(),
                status=self.status,
                message="error",
            )

    async def text(self) -> str:
        return self.body


PageEntry = Union[str, int, List[Union[str, int]]]


class FakeHttpSession:
    """
    Serves pages from a dict of URL -> body. A value may be an int (HTTP status),
    or a list consumed one entry per request to script flaky responses.
    Unknown URLs fail like a refused connection.
    """

    def __init__(self, pages: Optional[Dict[str, PageEntry]] = None, headers=None) -> None:
        self.pages: Dict[str, PageEntry] = dict(pages or {})
        self.headers = dict(headers or {})
        self.calls: List[str] = []
        self.closed = False

    def get(self, url: str, **kwargs) -> FakeResponse:
        self.calls.append(url)
        if url not in self.pages:
            raise aiohttp.ClientConnectionError(f"connection refused: {url}")
        entry = self.pages[url]
        if isinstance(entry, list):
            entry = entry.pop(0) if len(entry) > 1 else entry[0]
        if isinstance(entry, int):
            return FakeResponse(url, status=entry)
        return FakeResponse(url, body=entry)

    async def close(self) -> None:
        self.closed = True


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------

class MemoryStore:
    def __init__(self, brands: Optional[List[str]] = None) -> None:
        self.batches: List[List[ExtractedRecord]] = []
        self.prepared = 0
        self.brands = list(brands or [])

    def prepare(self) -> None:
        self.prepared += 1

    def write_batch(self, records) -> None:
        self.batches.append(list(records))

    def load_brands(self, supplier: str) -> List[str]:
        return list(self.brands)

    @property
    def records(self) -> List[ExtractedRecord]:
        return [r for batch in self.batches for r in batch]


class FailingStore(MemoryStore):
    def write_batch(self, records) -> None:
        raise RuntimeError("disk full")


class ThreadRecordingStore(MemoryStore):
    """Remembers which thread ran each blocking store call."""

    def __init__(self, brands: Optional[List[str]] = None) -> None:
        super().__init__(brands)
        self.threads: Dict[str, int] = {}

    def prepare(self) -> None:
        self.threads["prepare"] = threading.get_ident()
        super().prepare()

    def write_batch(self, records) -> None:
        self.threads["write_batch"] = threading.get_ident()
        super().write_batch(records)

    def load_brands(self, supplier: str) -> List[str]:
        self.threads["load_brands"] = threading.get_ident()
        return super().load_brands(supplier)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def config(tmp_path):
    return SyncConfig(
        base_url=BASE_URL,
        email="buyer@example.com",
        password="hunter2",
        max_concurrency=4,
        retries=0,
        retry_backoff=0,
        db_path=str(tmp_path / "catalog.db"),
    )


@pytest.fixture
def credentials():
    return SessionCredentials(cookies=(("_session", "abc123"), ("remember", "1")), user_agent="test-agent")


@pytest.fixture
def memory_store():
    return MemoryStore()


def make_record(sku="A1", brand="Acme", name="Widget", price="1.00", quantity="1"):
    from decimal import Decimal
    return ExtractedRecord(brand=brand, sku=sku, name=name, price=Decimal(price), quantity=Decimal(quantity))
