"""HTTP document store client using httpx.AsyncClient.

This module implements the store protocols against a REST document store laid
out as ``/dbs/{db}/colls/{coll}/docs``:
- HttpDocumentClient: DocumentClient (database and container listings)
- HttpContainer: RemoteCollection (create and upsert of single documents)
- HttpFeedIterator: PageFetcher following ``x-ms-continuation`` headers

Authentication is not handled here; callers supply ready-made headers through
ConnectionConfig.headers or ``DOCSTORE_AUTH_TOKEN``.
"""

from __future__ import annotations

import dataclasses
import json
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Self
from urllib.parse import quote

import httpx

from docstore_extended.store.errors import RemoteStoreError, response_message
from docstore_extended.store.models import (
    ConnectionConfig,
    Page,
    PartitionKey,
    ResourceProperties,
)

if TYPE_CHECKING:
    from docstore_extended.operations.cancellation import CancellationToken

logger = logging.getLogger(__name__)

CONTINUATION_HEADER = "x-ms-continuation"
MAX_ITEM_COUNT_HEADER = "x-ms-max-item-count"
UPSERT_HEADER = "x-ms-documentdb-is-upsert"
PARTITION_KEY_HEADER = "x-ms-documentdb-partitionkey"


def _segment(name: str) -> str:
    return quote(name, safe="")


def _partition_headers(partition_key: PartitionKey | None) -> dict[str, str]:
    if partition_key is None:
        return {}
    return {PARTITION_KEY_HEADER: json.dumps([partition_key])}


def _to_document(record: Any) -> Any:
    """Serialize a record to a JSON-compatible document."""
    if dataclasses.is_dataclass(record) and not isinstance(record, type):
        return dataclasses.asdict(record)
    return record


class HttpFeedIterator[T]:
    """Page fetcher over one listing feed of the store.

    Starts with ``has_more_results`` True and follows the continuation header
    of each response; a response without it is the last page.

    Args:
        client: Owning HttpDocumentClient.
        path: Feed path relative to the endpoint.
        body_key: Key of the record list in the response body.
        parse: Converts one JSON entry to a record.
        max_item_count: Requested page size.
        headers: Extra headers sent with every page request.
    """

    def __init__(
        self,
        client: HttpDocumentClient,
        path: str,
        body_key: str,
        parse: Callable[[Any], T],
        max_item_count: int,
        headers: dict[str, str] | None = None,
    ) -> None:
        if max_item_count < 1:
            raise ValueError("max_item_count must be at least 1")

        self._client = client
        self._path = path
        self._body_key = body_key
        self._parse = parse
        self._max_item_count = max_item_count
        self._headers = headers or {}
        self._continuation: str | None = None
        self._has_more = True

    @property
    def has_more_results(self) -> bool:
        """Whether another page can be fetched."""
        return self._has_more

    @property
    def continuation(self) -> str | None:
        """Continuation token of the next page, if any."""
        return self._continuation

    async def fetch_next(self, cancellation: CancellationToken | None = None) -> Page[T]:
        """Fetch the next page of the feed.

        Args:
            cancellation: Optional token checked before the request is issued.

        Returns:
            Page[T]: Records of this page and the continuation for the next one.

        Raises:
            SequenceCancelledError: If the token was triggered.
            RemoteStoreError: If the store rejected the request or the page body is
                not a JSON object.
        """
        if cancellation is not None:
            cancellation.raise_if_cancelled()

        headers = {MAX_ITEM_COUNT_HEADER: str(self._max_item_count), **self._headers}
        if self._continuation is not None:
            headers[CONTINUATION_HEADER] = self._continuation

        response = await self._client.request("GET", self._path, headers=headers)
        try:
            payload = response.json() if response.content else None
        except json.JSONDecodeError:
            payload = None
        if not isinstance(payload, dict):
            raise RemoteStoreError(response.status_code, "unexpected page body")
        records = [self._parse(entry) for entry in payload.get(self._body_key, [])]

        self._continuation = response.headers.get(CONTINUATION_HEADER) or None
        self._has_more = self._continuation is not None

        return Page(records=records, has_more=self._has_more, continuation=self._continuation)

    async def aclose(self) -> None:
        """Stop the feed; the shared HTTP client stays open."""
        self._has_more = False
        self._continuation = None


class HttpContainer:
    """Single-document writes against one container.

    Args:
        client: Owning HttpDocumentClient.
        database_name: Database id.
        container_name: Container id.
    """

    def __init__(self, client: HttpDocumentClient, database_name: str, container_name: str) -> None:
        self._client = client
        self.database_name = database_name
        self.container_name = container_name

    @property
    def path(self) -> str:
        """Resource path of the container."""
        return f"/dbs/{_segment(self.database_name)}/colls/{_segment(self.container_name)}"

    async def create_item(self, record: Any, partition_key: PartitionKey | None = None) -> Any:
        """Insert a document; the store answers 409 when the id exists."""
        return await self._write(record, partition_key, upsert=False)

    async def upsert_item(self, record: Any, partition_key: PartitionKey | None = None) -> Any:
        """Insert or overwrite a document."""
        return await self._write(record, partition_key, upsert=True)

    async def _write(self, record: Any, partition_key: PartitionKey | None, upsert: bool) -> Any:
        headers = _partition_headers(partition_key)
        if upsert:
            headers[UPSERT_HEADER] = "True"

        response = await self._client.request(
            "POST",
            f"{self.path}/docs",
            headers=headers,
            body=_to_document(record),
        )
        return response.json() if response.content else None

    def read_all_items(
        self,
        partition_key: PartitionKey | None = None,
        max_item_count: int | None = None,
    ) -> HttpFeedIterator[dict[str, Any]]:
        """Return a fetcher over every document of the container."""
        return HttpFeedIterator(
            self._client,
            f"{self.path}/docs",
            body_key="Documents",
            parse=dict,
            max_item_count=self._client.page_size(max_item_count),
            headers=_partition_headers(partition_key),
        )


class HttpDocumentClient:
    """Async client for a REST document store.

    Shares one httpx.AsyncClient (connection pooling) between every container
    and feed it hands out.

    Args:
        config: Connection configuration; defaults come from the environment.
        transport: Optional httpx transport, e.g. httpx.MockTransport in tests.

    Example:
        ```python
        async with HttpDocumentClient(ConnectionConfig(endpoint=url)) as client:
            if await container_exists(client, "shop", "orders"):
                result = await bulk_upsert(client.get_container("shop", "orders"), orders)
        ```
    """

    def __init__(
        self,
        config: ConnectionConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or ConnectionConfig()

        limits = httpx.Limits(
            max_keepalive_connections=self._config.max_keepalive_connections,
            max_connections=self._config.max_connections,
            keepalive_expiry=self._config.keepalive_expiry,
        )
        timeout = httpx.Timeout(self._config.timeout)

        self._http = httpx.AsyncClient(
            base_url=self._config.endpoint,  # type: ignore[arg-type]
            headers={"Accept": "application/json", **self._config.headers},
            limits=limits,
            timeout=timeout,
            http2=self._config.http2,
            transport=transport,
        )

    @property
    def config(self) -> ConnectionConfig:
        """Resolved connection configuration."""
        return self._config

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._http.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: Any = None,
    ) -> httpx.Response:
        """Send one request and map store rejections to RemoteStoreError.

        Transport failures (timeouts, connection errors) propagate unchanged.

        Raises:
            RemoteStoreError: If the response status is not 2xx.
        """
        response = await self._http.request(method, path, headers=headers, json=body)
        if response.is_success:
            return response

        message = response_message(response)
        logger.warning(
            json.dumps(
                {
                    "event": "remote_store_error",
                    "method": method,
                    "path": path,
                    "status_code": response.status_code,
                    "message": message,
                }
            )
        )
        raise RemoteStoreError(response.status_code, message)

    def page_size(self, max_item_count: int | None = None) -> int:
        """Resolve a requested page size; None means the configured default."""
        if max_item_count is not None:
            return max_item_count
        return self._config.max_item_count  # type: ignore[return-value]

    def get_container(self, database_name: str, container_name: str) -> HttpContainer:
        """Return a handle on a container; no request is made."""
        return HttpContainer(self, database_name, container_name)

    def database_query(self, max_item_count: int | None = None) -> HttpFeedIterator[ResourceProperties]:
        """Return a fetcher over every database of the account."""
        return HttpFeedIterator(
            self,
            "/dbs",
            body_key="Databases",
            parse=ResourceProperties.from_json,
            max_item_count=self.page_size(max_item_count),
        )

    def container_query(
        self,
        database_name: str,
        max_item_count: int | None = None,
    ) -> HttpFeedIterator[ResourceProperties]:
        """Return a fetcher over every container of a database."""
        return HttpFeedIterator(
            self,
            f"/dbs/{_segment(database_name)}/colls",
            body_key="DocumentCollections",
            parse=ResourceProperties.from_json,
            max_item_count=self.page_size(max_item_count),
        )
