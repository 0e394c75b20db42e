"""docstore-extended.

Concurrent bulk writes with partial-failure aggregation and lazy, cancellable
paged sequences for remote document stores, built on asyncio.
"""

from docstore_extended.operations import (
    BulkWriteExecutor,
    CancellationToken,
    PagedSequence,
    as_sequence,
    bulk_create,
    bulk_update,
    bulk_upsert,
    container_exists,
    database_exists,
)
from docstore_extended.store import (
    BatchResult,
    ConnectionConfig,
    DocstoreError,
    HttpDocumentClient,
    Page,
    RemoteStoreError,
    ResourceProperties,
    SequenceCancelledError,
    WriteOperation,
)

__version__ = "0.1.0"

__all__ = [
    "BatchResult",
    "BulkWriteExecutor",
    "CancellationToken",
    "ConnectionConfig",
    "DocstoreError",
    "HttpDocumentClient",
    "Page",
    "PagedSequence",
    "RemoteStoreError",
    "ResourceProperties",
    "SequenceCancelledError",
    "WriteOperation",
    "as_sequence",
    "bulk_create",
    "bulk_update",
    "bulk_upsert",
    "container_exists",
    "database_exists",
]
