"""Error taxonomy and write-failure classification.

Failures raised while awaiting a remote write are normalized into a closed
union of two variants before they are rendered:

- StructuredRemoteFailure: the store rejected the operation with a status code
  and message (RemoteStoreError, httpx.HTTPStatusError,
  aiohttp.ClientResponseError).
- UnclassifiedFailure: anything else, kept as the exception's repr().
"""

from __future__ import annotations

from dataclasses import dataclass

import aiohttp
import httpx


class DocstoreError(Exception):
    """Base class for errors raised by docstore_extended."""

    pass


class RemoteStoreError(DocstoreError):
    """Raised when the remote store rejects an operation.

    Attributes:
        status_code: Status code reported by the store.
        message: Human-readable message reported by the store.
    """

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class SequenceCancelledError(DocstoreError):
    """Raised by a paged sequence when its cancellation token was triggered."""

    pass


@dataclass(frozen=True, slots=True)
class StructuredRemoteFailure:
    """Write failure reported by the remote store itself."""

    status_code: int
    message: str


@dataclass(frozen=True, slots=True)
class UnclassifiedFailure:
    """Any other write failure (timeouts, transport, serialization faults)."""

    representation: str


type WriteFailure = StructuredRemoteFailure | UnclassifiedFailure


def response_message(response: httpx.Response) -> str:
    """Extract the store's error message from a response body.

    Falls back to the reason phrase when the body is not a JSON object with a
    ``message`` field.
    """
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return response.reason_phrase


def _structured(exc: BaseException) -> StructuredRemoteFailure | None:
    if isinstance(exc, RemoteStoreError):
        return StructuredRemoteFailure(status_code=exc.status_code, message=exc.message)

    if isinstance(exc, httpx.HTTPStatusError):
        return StructuredRemoteFailure(
            status_code=exc.response.status_code,
            message=response_message(exc.response),
        )

    if isinstance(exc, aiohttp.ClientResponseError):
        return StructuredRemoteFailure(status_code=exc.status, message=exc.message)

    return None


def _leaves(exc: BaseException) -> list[BaseException]:
    """Flatten nested exception groups into their leaf exceptions."""
    if isinstance(exc, BaseExceptionGroup):
        leaves: list[BaseException] = []
        for inner in exc.exceptions:
            leaves.extend(_leaves(inner))
        return leaves
    return [exc]


def classify_failure(exc: BaseException) -> WriteFailure:
    """Classify a failure raised by a single-record write.

    Exception groups are flattened: the first leaf attributable to the store
    wins, otherwise the first leaf is kept as an unclassified failure.

    Args:
        exc: The exception raised while awaiting the write.

    Returns:
        WriteFailure: The classified failure.
    """
    leaves = _leaves(exc)
    for leaf in leaves:
        structured = _structured(leaf)
        if structured is not None:
            return structured

    first = leaves[0] if leaves else exc
    return UnclassifiedFailure(representation=repr(first))


def describe_failure(failure: WriteFailure) -> str:
    """Render a classified failure as a failure description."""
    match failure:
        case StructuredRemoteFailure(status_code=code, message=message):
            return f"Received {code} ({message})."
        case UnclassifiedFailure(representation=representation):
            return f"Exception {representation}."


__all__ = [
    "DocstoreError",
    "RemoteStoreError",
    "SequenceCancelledError",
    "StructuredRemoteFailure",
    "UnclassifiedFailure",
    "WriteFailure",
    "classify_failure",
    "describe_failure",
    "response_message",
]
