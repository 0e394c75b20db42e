"""Cooperative cancellation token for paged sequences."""

from __future__ import annotations

import asyncio

from docstore_extended.store.errors import SequenceCancelledError


class CancellationToken:
    """
    Cooperative cancellation signal shared between a caller and a sequence.

    The token never interrupts an in-flight await; consumers poll it at their
    own suspension points and stop with SequenceCancelledError.

    Example:
        ```python
        token = CancellationToken()

        async for record in as_sequence(fetcher, cancellation=token):
            if done_with(record):
                token.cancel()
        ```
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def is_cancelled(self) -> bool:
        """Whether cancel() has been called."""
        return self._event.is_set()

    def cancel(self) -> None:
        """Trigger the token. Idempotent."""
        self._event.set()

    def raise_if_cancelled(self) -> None:
        """Raise SequenceCancelledError if the token was triggered."""
        if self._event.is_set():
            raise SequenceCancelledError("Operation was cancelled")

    async def wait(self) -> None:
        """Block until the token is triggered."""
        await self._event.wait()
