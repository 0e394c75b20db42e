"""Command line interface for docstore-extended.

Usage:
    docstore-extended [--endpoint URL] bulk {create,upsert,update} --database D --container C FILE
    docstore-extended [--endpoint URL] exists --database D [--container C]

Options:
    --endpoint URL      Store endpoint (default: DOCSTORE_ENDPOINT)
    --timeout SECONDS   Request timeout (default: DOCSTORE_TIMEOUT)
    --log-level LEVEL   Logging level (default: WARNING)

``bulk`` reads a JSON array or a JSON Lines file and prints a JSON summary; it
exits with 1 when any record failed. ``exists`` prints ``true`` or ``false``
and exits with 0 or 1 accordingly.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

import httpx

from docstore_extended.operations.bulk import BulkWriteExecutor
from docstore_extended.operations.probes import container_exists, database_exists
from docstore_extended.store.errors import DocstoreError
from docstore_extended.store.http_client import HttpDocumentClient
from docstore_extended.store.models import ConnectionConfig, PartitionKey, WriteOperation


def load_records(filepath: str | Path) -> list[Any]:
    """Load records from a JSON array or JSON Lines file.

    Args:
        filepath: Path to the records file.

    Returns:
        List of records in file order.

    Raises:
        ValueError: If the file holds a single JSON value that is not an array.
    """
    text = Path(filepath).read_text(encoding="utf-8")
    stripped = text.lstrip()
    if stripped.startswith("["):
        data = json.loads(stripped)
        if not isinstance(data, list):
            raise ValueError(f"Expected a JSON array in {filepath}")
        return data

    return [json.loads(line) for line in text.splitlines() if line.strip()]


def _parse_partition_key(value: str | None) -> PartitionKey | None:
    """Parse a partition key given on the command line.

    JSON numbers and booleans keep their type; any other text, including JSON
    arrays, objects and null, is used as a plain string.
    """
    if value is None:
        return None
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        return value
    if isinstance(parsed, (str, int, float, bool)):
        return parsed
    return value


def _build_client(args: argparse.Namespace) -> HttpDocumentClient:
    return HttpDocumentClient(ConnectionConfig(endpoint=args.endpoint, timeout=args.timeout))


async def run_bulk(client: HttpDocumentClient, args: argparse.Namespace) -> int:
    """Run a bulk write and print its summary."""
    records = load_records(args.file)
    container = client.get_container(args.database, args.container)

    result = await BulkWriteExecutor().run(
        container,
        records,
        WriteOperation(args.operation),
        _parse_partition_key(args.partition_key),
    )

    summary = {
        "operation": args.operation,
        "dispatched": result.dispatched,
        "failed": result.failure_count,
        "failures": result.failures,
        "total_time": result.total_time,
    }
    print(json.dumps(summary, indent=2))
    return 0 if result.ok else 1


async def run_exists(client: HttpDocumentClient, args: argparse.Namespace) -> int:
    """Probe a database or container and print the answer."""
    if args.container:
        exists = await container_exists(client, args.database, args.container)
    else:
        exists = await database_exists(client, args.database)

    print("true" if exists else "false")
    return 0 if exists else 1


async def _run(args: argparse.Namespace) -> int:
    async with _build_client(args) as client:
        if args.command == "bulk":
            return await run_bulk(client, args)
        return await run_exists(client, args)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docstore-extended",
        description="Bulk writes and existence probes against a remote document store",
    )
    parser.add_argument("--endpoint", type=str, default=None, help="Store endpoint URL")
    parser.add_argument("--timeout", type=float, default=None, help="Request timeout in seconds")
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    bulk = subparsers.add_parser("bulk", help="Write every record of a file concurrently")
    bulk.add_argument("operation", choices=[op.value for op in WriteOperation])
    bulk.add_argument("file", type=str, help="JSON array or JSON Lines file of records")
    bulk.add_argument("--database", required=True)
    bulk.add_argument("--container", required=True)
    bulk.add_argument("--partition-key", type=str, default=None, help="Partition key (JSON or text)")

    exists = subparsers.add_parser("exists", help="Check that a database or container exists")
    exists.add_argument("--database", required=True)
    exists.add_argument("--container", default=None)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code (0 for success, 1 for failures or a missing resource, 2 for errors).
    """
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    try:
        return asyncio.run(_run(args))
    except (DocstoreError, httpx.HTTPError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
