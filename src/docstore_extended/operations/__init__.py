"""Bulk-write, paging and existence-probe operations."""

from docstore_extended.operations.bulk import (
    BulkWriteExecutor,
    bulk_create,
    bulk_update,
    bulk_upsert,
    resolve_write,
)
from docstore_extended.operations.cancellation import CancellationToken
from docstore_extended.operations.paging import PagedSequence, as_sequence
from docstore_extended.operations.probes import container_exists, database_exists

__all__ = [
    # Bulk writes
    "BulkWriteExecutor",
    "bulk_create",
    "bulk_update",
    "bulk_upsert",
    "resolve_write",
    # Paging
    "CancellationToken",
    "PagedSequence",
    "as_sequence",
    # Probes
    "container_exists",
    "database_exists",
]
