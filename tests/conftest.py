"""Pytest configuration and fixtures for docstore-extended tests.

Provides in-memory stand-ins for the remote store capabilities:
- FakeCollection: RemoteCollection with seeded random latency and failure injection
- FakePageFetcher: PageFetcher serving a fixed list of pages
- FakeDocumentClient: DocumentClient built on FakePageFetcher
- InMemoryDocumentStore: httpx.MockTransport handler emulating the REST layout
"""

from __future__ import annotations

import asyncio
import json
import random
from collections import deque
from collections.abc import AsyncIterator, Iterable
from typing import Any
from urllib.parse import unquote

import httpx
import pytest

from docstore_extended.operations.cancellation import CancellationToken
from docstore_extended.store.errors import RemoteStoreError
from docstore_extended.store.http_client import HttpDocumentClient
from docstore_extended.store.models import ConnectionConfig, Page, ResourceProperties


class FakeCollection:
    """In-memory collection keyed by record ``id``.

    Args:
        failures: Exception to raise per record id.
        max_latency: Upper bound of the random per-write delay in seconds.
        seed: Seed of the latency generator.
    """

    def __init__(
        self,
        failures: dict[str, BaseException] | None = None,
        max_latency: float = 0.0,
        seed: int = 42,
    ) -> None:
        self.failures = failures or {}
        self.max_latency = max_latency
        self.documents: dict[str, Any] = {}
        self.calls: list[tuple[str, str, Any]] = []
        self.in_flight = 0
        self.peak_in_flight = 0
        self.completed = 0
        self._random = random.Random(seed)

    async def create_item(self, record: Any, partition_key: Any = None) -> Any:
        return await self._write("create", record, partition_key, upsert=False)

    async def upsert_item(self, record: Any, partition_key: Any = None) -> Any:
        return await self._write("upsert", record, partition_key, upsert=True)

    async def _write(self, method: str, record: Any, partition_key: Any, upsert: bool) -> Any:
        record_id = record["id"]
        self.calls.append((method, record_id, partition_key))
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self._random.uniform(0, self.max_latency))
            failure = self.failures.get(record_id)
            if failure is not None:
                raise failure
            if not upsert and record_id in self.documents:
                raise RemoteStoreError(409, "Entity with the specified id already exists in the system.")
            self.documents[record_id] = record
            return record
        finally:
            self.in_flight -= 1
            self.completed += 1


class FakePageFetcher:
    """Page fetcher serving pre-built pages in order.

    Args:
        pages: Records of each page; the last page reports no more results.
        error: Exception raised instead of serving a page.
        error_on_fetch: 1-based fetch number raising ``error``.
    """

    def __init__(
        self,
        pages: Iterable[list[Any]],
        error: BaseException | None = None,
        error_on_fetch: int = 1,
    ) -> None:
        self._pages = deque(list(page) for page in pages)
        self._error = error
        self._error_on_fetch = error_on_fetch
        self.fetch_count = 0
        self.released = 0
        self.closed = False
        self.tokens_seen: list[CancellationToken | None] = []

    @property
    def has_more_results(self) -> bool:
        return bool(self._pages)

    async def fetch_next(self, cancellation: CancellationToken | None = None) -> Page[Any]:
        self.fetch_count += 1
        self.tokens_seen.append(cancellation)
        await asyncio.sleep(0)
        if self._error is not None and self.fetch_count == self._error_on_fetch:
            raise self._error
        records = self._pages.popleft()
        return Page(records=records, has_more=bool(self._pages), release=self._release)

    async def _release(self) -> None:
        self.released += 1

    async def aclose(self) -> None:
        self.closed = True


class FakeDocumentClient:
    """Document client listing fixed database and container ids.

    Args:
        database_pages: Database ids, one list per page.
        container_pages: Container ids per database, one list per page.
        error: Exception raised by the first database page fetch.
    """

    def __init__(
        self,
        database_pages: list[list[str]],
        container_pages: dict[str, list[list[str]]] | None = None,
        error: BaseException | None = None,
    ) -> None:
        self._database_pages = database_pages
        self._container_pages = container_pages or {}
        self._error = error
        self.database_fetchers: list[FakePageFetcher] = []
        self.container_fetchers: list[FakePageFetcher] = []
        self.container_queries: list[str] = []

    def database_query(self) -> FakePageFetcher:
        fetcher = FakePageFetcher(
            [[ResourceProperties(id=name) for name in page] for page in self._database_pages],
            error=self._error,
        )
        self.database_fetchers.append(fetcher)
        return fetcher

    def container_query(self, database_name: str) -> FakePageFetcher:
        self.container_queries.append(database_name)
        pages = self._container_pages.get(database_name, [[]])
        fetcher = FakePageFetcher([[ResourceProperties(id=name) for name in page] for page in pages])
        self.container_fetchers.append(fetcher)
        return fetcher


class InMemoryDocumentStore:
    """httpx.MockTransport handler emulating the ``/dbs/{db}/colls/{coll}/docs`` layout.

    Listings are paged by ``x-ms-max-item-count``; the continuation token is
    the offset of the next page.

    Args:
        databases: Documents per container per database.
        throttled_ids: Document ids answered with 429 on write.
    """

    def __init__(
        self,
        databases: dict[str, dict[str, dict[str, dict[str, Any]]]] | None = None,
        throttled_ids: set[str] | None = None,
    ) -> None:
        self.databases = databases if databases is not None else {}
        self.throttled_ids = throttled_ids or set()
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        parts = [unquote(part) for part in request.url.raw_path.decode().split("?")[0].strip("/").split("/")]

        if request.method == "GET" and parts == ["dbs"]:
            return self._page(request, "Databases", [self._resource(name) for name in self.databases])

        if len(parts) < 2 or parts[1] not in self.databases:
            return self._error(404, "Resource Not Found")
        containers = self.databases[parts[1]]

        if request.method == "GET" and len(parts) == 3 and parts[2] == "colls":
            return self._page(request, "DocumentCollections", [self._resource(name) for name in containers])

        if len(parts) != 5 or parts[2] != "colls" or parts[4] != "docs" or parts[3] not in containers:
            return self._error(404, "Resource Not Found")
        documents = containers[parts[3]]

        if request.method == "GET":
            return self._page(request, "Documents", list(documents.values()))

        return self._write(request, documents)

    def _write(self, request: httpx.Request, documents: dict[str, dict[str, Any]]) -> httpx.Response:
        document = json.loads(request.content)
        if "id" not in document:
            return self._error(
                400,
                "The input content is invalid because the required properties - 'id; ' - are missing",
            )
        if document["id"] in self.throttled_ids:
            return self._error(429, "Request rate is large.")

        upsert = request.headers.get("x-ms-documentdb-is-upsert") == "True"
        exists = document["id"] in documents
        if exists and not upsert:
            return self._error(409, "Entity with the specified id already exists in the system.")

        documents[document["id"]] = document
        return httpx.Response(200 if exists else 201, json=document)

    @staticmethod
    def _resource(name: str) -> dict[str, Any]:
        return {"id": name, "_rid": f"rid-{name}", "_etag": f'"etag-{name}"', "_ts": 1700000000}

    @staticmethod
    def _page(request: httpx.Request, key: str, entries: list[Any]) -> httpx.Response:
        size = int(request.headers.get("x-ms-max-item-count", "100"))
        start = int(request.headers.get("x-ms-continuation", "0"))
        end = start + size
        headers = {"x-ms-continuation": str(end)} if end < len(entries) else {}
        return httpx.Response(200, json={key: entries[start:end], "_count": len(entries[start:end])}, headers=headers)

    @staticmethod
    def _error(status_code: int, message: str) -> httpx.Response:
        return httpx.Response(status_code, json={"code": str(status_code), "message": message})


@pytest.fixture()
def make_collection() -> type[FakeCollection]:
    """Provide the FakeCollection factory."""
    return FakeCollection


@pytest.fixture()
def make_fetcher() -> type[FakePageFetcher]:
    """Provide the FakePageFetcher factory."""
    return FakePageFetcher


@pytest.fixture()
def make_client() -> type[FakeDocumentClient]:
    """Provide the FakeDocumentClient factory."""
    return FakeDocumentClient


@pytest.fixture()
def store() -> InMemoryDocumentStore:
    """In-memory store with two databases and a few documents."""
    return InMemoryDocumentStore(
        databases={
            "shop": {
                "orders": {
                    "o1": {"id": "o1", "total": 10},
                    "o2": {"id": "o2", "total": 20},
                    "o3": {"id": "o3", "total": 30},
                },
                "customers": {},
            },
            "audit": {"events": {}},
        }
    )


@pytest.fixture()
async def http_client(store: InMemoryDocumentStore) -> AsyncIterator[HttpDocumentClient]:
    """HttpDocumentClient wired to the in-memory store, two records per page."""
    config = ConnectionConfig(endpoint="http://docstore.test", max_item_count=2, http2=False)
    async with HttpDocumentClient(config, transport=httpx.MockTransport(store)) as client:
        yield client
