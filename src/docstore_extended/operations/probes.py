"""Existence probes built on the paged sequence adapter."""

from __future__ import annotations

from docstore_extended.operations.paging import as_sequence
from docstore_extended.store.base import DocumentClient, PageFetcher
from docstore_extended.store.models import ResourceProperties


async def _resource_ids(fetcher: PageFetcher[ResourceProperties]) -> set[str]:
    async with as_sequence(fetcher) as resources:
        return {resource.id async for resource in resources}


async def database_exists(client: DocumentClient, name: str) -> bool:
    """Check whether a database with this exact id exists.

    Lists every database on each call; there is no cache.
    """
    return name in await _resource_ids(client.database_query())


async def container_exists(client: DocumentClient, database_name: str, container_name: str) -> bool:
    """Check whether a container exists in a database.

    Returns False without listing containers when the database is missing.
    """
    if not await database_exists(client, database_name):
        return False

    return container_name in await _resource_ids(client.container_query(database_name))
