"""Domain models shared by the bulk-write and paging operations.

This module defines the data structures passed between the operations and the
remote store capabilities.
"""

from __future__ import annotations

import os
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

type PartitionKey = str | int | float | bool


class WriteOperation(str, Enum):
    """Single-record write applied to every record of a bulk call.

    Attributes:
        CREATE: Insert the record; the store rejects existing ids.
        UPSERT: Insert or overwrite the record.
        UPDATE: Alias of UPSERT (write or overwrite, never "fail if absent").
    """

    CREATE = "create"
    UPSERT = "upsert"
    UPDATE = "update"


@dataclass(slots=True)
class Page[T]:
    """One page of records returned by a page fetcher.

    Attributes:
        records: Records in the order the store returned them.
        has_more: Whether the store reported more pages after this one.
        continuation: Opaque continuation state for the next fetch.
        release: Optional hook releasing resources held by the page.
    """

    records: list[T]
    has_more: bool = False
    continuation: str | None = None
    release: Callable[[], Awaitable[None]] | None = field(default=None, repr=False)

    async def aclose(self) -> None:
        """Release page resources, at most once."""
        release, self.release = self.release, None
        if release is not None:
            await release()


@dataclass(frozen=True, slots=True)
class ResourceProperties:
    """System properties of a database or container listing entry."""

    id: str
    etag: str | None = None
    rid: str | None = None
    timestamp: int | None = None

    @classmethod
    def from_json(cls, payload: dict[str, Any]) -> ResourceProperties:
        """Build from a JSON resource body (``id``, ``_etag``, ``_rid``, ``_ts``)."""
        ts = payload.get("_ts")
        return cls(
            id=str(payload["id"]),
            etag=payload.get("_etag"),
            rid=payload.get("_rid"),
            timestamp=int(ts) if ts is not None else None,
        )


@dataclass(frozen=True, slots=True)
class BatchResult:
    """Aggregate result of one bulk write call.

    Only failures are retained; successful records are not reported.

    Attributes:
        failures: Failure descriptions, one per failed record, in completion order.
        dispatched: Number of writes issued (equals the number of input records).
        total_time: Wall time of the whole call in seconds.
    """

    failures: list[str]
    dispatched: int
    total_time: float = 0.0

    @property
    def ok(self) -> bool:
        """True when every record was written."""
        return not self.failures

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    @property
    def success_count(self) -> int:
        return self.dispatched - len(self.failures)

    def __iter__(self) -> Iterator[str]:
        return iter(self.failures)

    def __len__(self) -> int:
        return len(self.failures)


@dataclass(frozen=True, slots=True)
class ConnectionConfig:
    """Configuration for the HTTP document store client.

    Unset values are read from the environment, then fall back to defaults.

    Attributes:
        endpoint: Base URL of the store (``DOCSTORE_ENDPOINT``).
        timeout: Request timeout in seconds (``DOCSTORE_TIMEOUT``).
        max_item_count: Page size requested from listing feeds
            (``DOCSTORE_MAX_ITEM_COUNT``).
        max_connections: Maximum number of concurrent connections.
        max_keepalive_connections: Maximum keep-alive connections to maintain.
        keepalive_expiry: Seconds before closing idle keep-alive connections.
        http2: Enable HTTP/2 multiplexing.
        headers: Extra headers sent with every request. ``DOCSTORE_AUTH_TOKEN``
            becomes the ``Authorization`` header when not given here.
    """

    endpoint: str | None = None
    timeout: float | None = None
    max_item_count: int | None = None
    max_connections: int = 100
    max_keepalive_connections: int = 20
    keepalive_expiry: float = 30.0
    http2: bool = False
    headers: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        endpoint = self.endpoint or os.getenv("DOCSTORE_ENDPOINT", "http://localhost:8081")
        timeout = (
            self.timeout if self.timeout is not None else float(os.getenv("DOCSTORE_TIMEOUT", "30.0"))
        )
        max_item_count = (
            self.max_item_count
            if self.max_item_count is not None
            else int(os.getenv("DOCSTORE_MAX_ITEM_COUNT", "100"))
        )

        if max_item_count < 1:
            raise ValueError("max_item_count must be at least 1")
        if timeout <= 0:
            raise ValueError("timeout must be positive")

        headers = dict(self.headers)
        token = os.getenv("DOCSTORE_AUTH_TOKEN")
        if token and "Authorization" not in headers:
            headers["Authorization"] = token

        # frozen dataclass: resolved values are written through object.__setattr__
        object.__setattr__(self, "endpoint", endpoint.rstrip("/"))
        object.__setattr__(self, "timeout", timeout)
        object.__setattr__(self, "max_item_count", max_item_count)
        object.__setattr__(self, "headers", headers)
