"""
End-to-end sync runs with a canned login and fake HTTP session.
"""
import asyncio
import sqlite3
import threading

import pytest

from catalog_crawler.engines.pipeline import resolve_brands, run_sync
from catalog_crawler.errors import AuthenticationError, BrandLookupError, DirectoryFetchError, SinkWriteError
from catalog_crawler.export.sqlite_store import SQLiteRecordStore

from conftest import (
    DIRECTORY_URL,
    NO_PRODUCTS_PAGE,
    FailingStore,
    FakeHttpSession,
    MemoryStore,
    ThreadRecordingStore,
    directory_page,
    table_page,
    table_row,
)

ACME_PAGE_1 = "https://shop.test/products/list?category=7&brand=acme&per_page=96"
ACME_PAGE_2 = "https://shop.test/products/list?category=7&brand=acme&per_page=96&page=2"
GHOST_SEARCH = "https://shop.test/products/search_list?utf8=%E2%9C%93&search=Ghost&per_page=96"

SITE = {
    DIRECTORY_URL: directory_page({"Acme": "/products/list?category=7&brand=acme"}),
    ACME_PAGE_1: table_page(
        [table_row("AA Alkaline", "AA4", price="6.03", qty=12), table_row("AAA Alkaline", "AAA4", price="5.10", qty=0)],
        next_href="/products/list?category=7&brand=acme&per_page=96&page=2",
    ),
    ACME_PAGE_2: table_page([table_row("C Cell", "C2", price="3.50", qty=4)]),
    GHOST_SEARCH: NO_PRODUCTS_PAGE,
}


def fake_site(pages):
    sessions = []

    def factory(headers):
        http = FakeHttpSession(pages, headers=headers)
        sessions.append(http)
        return http

    return factory, sessions


def canned_login(credentials):
    async def login(config):
        return credentials
    return login


class TestRunSync:

    def test_acme_and_ghost(self, config, credentials):
        store = MemoryStore()
        factory, sessions = fake_site(SITE)

        report = asyncio.run(run_sync(
            config, store, ["Acme", "Ghost"],
            login=canned_login(credentials),
            session_factory=factory,
        ))

        assert report.total_records == 3
        assert report.records_by_brand == {"Acme": 3, "Ghost": 0}
        assert report.batches_written == 1
        assert len(store.batches) == 1
        assert {r.brand for r in store.records} == {"Acme"}
        assert store.prepared == 1
        assert sessions[0].calls.count(GHOST_SEARCH) == 1
        assert sessions[0].closed

    def test_session_headers_sent(self, config, credentials):
        factory, sessions = fake_site(SITE)

        asyncio.run(run_sync(config, MemoryStore(), ["Ghost"], login=canned_login(credentials), session_factory=factory))

        assert sessions[0].headers == {"Cookie": "_session=abc123; remember=1", "User-Agent": "test-agent"}

    def test_no_brands_skips_login(self, config):
        async def login(config):
            raise AssertionError("login should not run")

        report = asyncio.run(run_sync(config, MemoryStore(), [], login=login))

        assert report.total_records == 0

    def test_login_failure_aborts_before_crawl(self, config):
        store = MemoryStore()
        factory, sessions = fake_site(SITE)

        async def login(config):
            raise AuthenticationError("stayed on sign in")

        with pytest.raises(AuthenticationError):
            asyncio.run(run_sync(config, store, ["Acme"], login=login, session_factory=factory))

        assert sessions == []
        assert store.prepared == 0

    def test_directory_failure_is_fatal(self, config, credentials):
        store = MemoryStore()
        factory, sessions = fake_site({})

        with pytest.raises(DirectoryFetchError):
            asyncio.run(run_sync(config, store, ["Acme"], login=canned_login(credentials), session_factory=factory))

        assert store.prepared == 0
        assert sessions[0].closed

    def test_store_calls_leave_the_event_loop_thread(self, config, credentials):
        store = ThreadRecordingStore()
        factory, _ = fake_site(SITE)

        asyncio.run(run_sync(config, store, ["Acme"], login=canned_login(credentials), session_factory=factory))

        loop_thread = threading.get_ident()
        assert store.threads["prepare"] != loop_thread
        assert store.threads["write_batch"] != loop_thread

    def test_sink_failure_is_fatal(self, config, credentials):
        factory, _ = fake_site(SITE)

        with pytest.raises(SinkWriteError):
            asyncio.run(run_sync(
                config, FailingStore(), ["Acme"],
                login=canned_login(credentials),
                session_factory=factory,
            ))


class TestResolveBrands:

    def test_config_brands_win(self, config):
        config.brands = ["Acme"]
        assert resolve_brands(config, MemoryStore(brands=["Other"])) == ["Acme"]

    def test_store_brands(self, config):
        assert resolve_brands(config, MemoryStore(brands=["Duracell", "Varta"])) == ["Duracell", "Varta"]

    def test_missing_brand_table(self, config):
        store = SQLiteRecordStore(config.db_path, config.table)

        with pytest.raises(BrandLookupError) as excinfo:
            resolve_brands(config, store)

        assert excinfo.value.stage == "brand lookup"
        assert isinstance(excinfo.value.__cause__, sqlite3.OperationalError)

