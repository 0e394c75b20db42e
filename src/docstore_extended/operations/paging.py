"""Lazy paged sequence adapter over a remote paginated result set."""

from __future__ import annotations

import json
import logging
from collections import deque
from typing import Any, Self

from docstore_extended.operations.cancellation import CancellationToken
from docstore_extended.store.base import PageFetcher

logger = logging.getLogger(__name__)


class PagedSequence[T]:
    """
    Async iterator presenting a paginated result set as one ordered sequence.

    Records are yielded in the order each page returned them and pages are
    consumed in fetch order. The next page is only fetched once the buffered
    records are exhausted and another record is demanded.

    The cancellation token is checked before each fetch and before each
    yielded record; a triggered token raises SequenceCancelledError instead of
    ending the iteration. A fetch failure propagates to the consumer as is.
    After either, the sequence is finished and cannot be resumed.

    Args:
        fetcher: Page fetcher supplied by the store client.
        cancellation: Optional cooperative cancellation token.

    Example:
        ```python
        async with as_sequence(client.database_query()) as databases:
            async for database in databases:
                print(database.id)
        ```
    """

    def __init__(
        self,
        fetcher: PageFetcher[T],
        cancellation: CancellationToken | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._cancellation = cancellation
        self._buffer: deque[T] = deque()
        self._finished = False
        self._pages_fetched = 0

    @property
    def pages_fetched(self) -> int:
        """Number of pages fetched so far."""
        return self._pages_fetched

    @property
    def is_finished(self) -> bool:
        """Whether the sequence ended (exhausted, failed or cancelled)."""
        return self._finished

    def has_more(self) -> bool:
        """Whether a buffered record or another page may still be available."""
        if self._finished:
            return False
        return bool(self._buffer) or self._fetcher.has_more_results

    def __aiter__(self) -> Self:
        return self

    async def __anext__(self) -> T:
        if self._finished:
            raise StopAsyncIteration

        try:
            while not self._buffer:
                if not self._fetcher.has_more_results:
                    self._finished = True
                    raise StopAsyncIteration
                await self._fetch_page()

            self._check_cancelled()
        except StopAsyncIteration:
            raise
        except BaseException:
            self._finished = True
            raise

        return self._buffer.popleft()

    async def _fetch_page(self) -> None:
        """Fetch one page into the buffer and release it right away."""
        self._check_cancelled()

        page = await self._fetcher.fetch_next(self._cancellation)
        try:
            self._buffer.extend(page.records)
        finally:
            await page.aclose()

        self._pages_fetched += 1
        logger.debug(
            json.dumps(
                {
                    "event": "page_fetched",
                    "page": self._pages_fetched,
                    "records": len(page.records),
                    "has_more": self._fetcher.has_more_results,
                }
            )
        )

    def _check_cancelled(self) -> None:
        if self._cancellation is not None and self._cancellation.is_cancelled:
            logger.info(
                json.dumps(
                    {
                        "event": "sequence_cancelled",
                        "pages_fetched": self._pages_fetched,
                        "buffered": len(self._buffer),
                    }
                )
            )
            self._cancellation.raise_if_cancelled()

    async def to_list(self) -> list[T]:
        """Materialize every remaining record."""
        return [record async for record in self]

    async def aclose(self) -> None:
        """Finish the sequence and close the fetcher if it is closeable."""
        self._finished = True
        self._buffer.clear()
        close = getattr(self._fetcher, "aclose", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()


def as_sequence[T](
    fetcher: PageFetcher[T],
    cancellation: CancellationToken | None = None,
) -> PagedSequence[T]:
    """Wrap a page fetcher into a lazy, cancellable sequence of records.

    Args:
        fetcher: Page fetcher supplied by the store client.
        cancellation: Optional cooperative cancellation token.

    Returns:
        PagedSequence[T]: A fresh sequence over the fetcher's remaining pages.
    """
    return PagedSequence(fetcher, cancellation)
