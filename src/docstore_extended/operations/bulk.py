"""Concurrent bulk writes with partial-failure aggregation.

This module applies one single-record write to every record of a collection:
- asyncio.TaskGroup for structured fan-out/fan-in (Python 3.11+)
- per-task failure capture, so one failure never cancels its siblings
- an asyncio.Lock guarding the shared failure list

Every write is dispatched eagerly. There is no retry and no throttling: a
store that throttles reports it as a structured failure like any other.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from docstore_extended.store.base import RemoteCollection
from docstore_extended.store.errors import classify_failure, describe_failure
from docstore_extended.store.models import BatchResult, PartitionKey, WriteOperation

logger = logging.getLogger(__name__)

type WriteCall = Callable[[Any, PartitionKey | None], Awaitable[Any]]


def resolve_write(collection: RemoteCollection, operation: WriteOperation) -> WriteCall:
    """Pick the collection method implementing a write operation.

    UPDATE resolves to upsert_item: it writes or overwrites and does not
    require the record to exist.

    Raises:
        ValueError: If the operation is unknown.
    """
    match WriteOperation(operation):
        case WriteOperation.CREATE:
            return collection.create_item
        case WriteOperation.UPSERT | WriteOperation.UPDATE:
            return collection.upsert_item
    raise ValueError(f"Unsupported write operation: {operation!r}")


class BulkWriteExecutor:
    """Applies the same write to every record concurrently.

    The call returns only after every dispatched write reached a terminal
    state. Failures are classified and returned as descriptions; they are
    never raised from run().

    Example:
        ```python
        import asyncio
        from docstore_extended.operations.bulk import BulkWriteExecutor

        async def main(container):
            executor = BulkWriteExecutor()
            result = await executor.run(container, records, WriteOperation.UPSERT)
            for failure in result:
                print(failure)

        asyncio.run(main(container))
        ```
    """

    async def run(
        self,
        collection: RemoteCollection,
        records: Iterable[Any],
        operation: WriteOperation,
        partition_key: PartitionKey | None = None,
    ) -> BatchResult:
        """Write every record with the given operation.

        Args:
            collection: Remote collection receiving the writes.
            records: Records to write, one remote call each.
            operation: Write applied to every record.
            partition_key: Routing token applied to every write, or None for
                the store default.

        Returns:
            BatchResult with one failure description per failed record.
        """
        write = resolve_write(collection, operation)
        items = list(records)
        if not items:
            return BatchResult(failures=[], dispatched=0, total_time=0.0)

        failures: list[str] = []
        lock = asyncio.Lock()
        start_time = time.perf_counter()

        async def write_one(record: Any) -> None:
            """Await one write, recording its failure if any."""
            try:
                await write(record, partition_key)
            except Exception as exc:
                description = describe_failure(classify_failure(exc))
                async with lock:
                    failures.append(description)
                logger.debug(
                    json.dumps(
                        {
                            "event": "bulk_write_failed",
                            "operation": WriteOperation(operation).value,
                            "failure": description,
                        }
                    )
                )

        # write_one never raises, so the group only exits once all tasks finished
        async with asyncio.TaskGroup() as tg:
            for record in items:
                tg.create_task(write_one(record))

        total_time = time.perf_counter() - start_time
        logger.info(
            json.dumps(
                {
                    "event": "bulk_write_completed",
                    "operation": WriteOperation(operation).value,
                    "dispatched": len(items),
                    "failed": len(failures),
                    "duration_ms": round(total_time * 1000, 3),
                }
            )
        )

        return BatchResult(failures=failures, dispatched=len(items), total_time=total_time)


async def bulk_create(
    collection: RemoteCollection,
    records: Iterable[Any],
    partition_key: PartitionKey | None = None,
) -> BatchResult:
    """Create every record concurrently; existing ids are reported as failures."""
    return await BulkWriteExecutor().run(collection, records, WriteOperation.CREATE, partition_key)


async def bulk_upsert(
    collection: RemoteCollection,
    records: Iterable[Any],
    partition_key: PartitionKey | None = None,
) -> BatchResult:
    """Insert or overwrite every record concurrently."""
    return await BulkWriteExecutor().run(collection, records, WriteOperation.UPSERT, partition_key)


async def bulk_update(
    collection: RemoteCollection,
    records: Iterable[Any],
    partition_key: PartitionKey | None = None,
) -> BatchResult:
    """Update every record concurrently, with upsert semantics."""
    return await BulkWriteExecutor().run(collection, records, WriteOperation.UPDATE, partition_key)
