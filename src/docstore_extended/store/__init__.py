"""Remote store capabilities, models and the HTTP client."""

from docstore_extended.store.base import DocumentClient, PageFetcher, RemoteCollection
from docstore_extended.store.errors import (
    DocstoreError,
    RemoteStoreError,
    SequenceCancelledError,
    StructuredRemoteFailure,
    UnclassifiedFailure,
    WriteFailure,
    classify_failure,
    describe_failure,
)
from docstore_extended.store.http_client import (
    HttpContainer,
    HttpDocumentClient,
    HttpFeedIterator,
)
from docstore_extended.store.models import (
    BatchResult,
    ConnectionConfig,
    Page,
    PartitionKey,
    ResourceProperties,
    WriteOperation,
)

__all__ = [
    "BatchResult",
    "ConnectionConfig",
    "DocstoreError",
    "DocumentClient",
    "HttpContainer",
    "HttpDocumentClient",
    "HttpFeedIterator",
    "Page",
    "PageFetcher",
    "PartitionKey",
    "RemoteCollection",
    "RemoteStoreError",
    "ResourceProperties",
    "SequenceCancelledError",
    "StructuredRemoteFailure",
    "UnclassifiedFailure",
    "WriteFailure",
    "WriteOperation",
    "classify_failure",
    "describe_failure",
]
