"""Protocols for the remote store capabilities consumed by the operations.

The bulk-write and paging operations are written against these protocols, so
any store client that conforms (the bundled HttpDocumentClient, a vendor SDK
wrapper, an in-memory fake) can be used.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from docstore_extended.store.models import Page, PartitionKey, ResourceProperties

if TYPE_CHECKING:
    from docstore_extended.operations.cancellation import CancellationToken


@runtime_checkable
class RemoteCollection(Protocol):
    """A remote collection accepting single-record writes.

    Both methods raise on failure; a structured rejection should surface as a
    RemoteStoreError (or an HTTP status error) carrying the store's status.

    Example:
        >>> from docstore_extended.store.base import RemoteCollection
        >>> from docstore_extended.store.http_client import HttpContainer
        >>> issubclass(HttpContainer, RemoteCollection)
        True
    """

    async def create_item(self, record: Any, partition_key: PartitionKey | None = None) -> Any:
        """Insert a record; rejected when the id already exists."""
        ...

    async def upsert_item(self, record: Any, partition_key: PartitionKey | None = None) -> Any:
        """Insert or overwrite a record."""
        ...


@runtime_checkable
class PageFetcher[T](Protocol):
    """A cursor over a remote paginated result set.

    ``has_more_results`` is True until a fetch reports the final page.
    """

    @property
    def has_more_results(self) -> bool:
        """Whether another page can be fetched."""
        ...

    async def fetch_next(self, cancellation: CancellationToken | None = None) -> Page[T]:
        """Fetch the next page and advance the continuation state.

        Args:
            cancellation: Optional token checked before the request is issued.

        Returns:
            The next page of records.
        """
        ...


@runtime_checkable
class DocumentClient(Protocol):
    """A store client able to list its databases and containers."""

    def database_query(self) -> PageFetcher[ResourceProperties]:
        """Return a fresh fetcher over every database of the account."""
        ...

    def container_query(self, database_name: str) -> PageFetcher[ResourceProperties]:
        """Return a fresh fetcher over every container of a database."""
        ...
