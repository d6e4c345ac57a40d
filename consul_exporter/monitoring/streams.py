"""Single-scrape result channels between the dispatcher and the aggregator.

A ``ResultStream`` is a bounded queue with an explicit close. The producer
awaits ``put`` for every batch and calls ``close`` exactly once when it is
done; the consumer iterates with ``async for`` and stops once the stream is
closed and drained. Streams are never reused across scrapes.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import AsyncIterator, Generic, TypeVar

from consul_exporter.core.constants import DEFAULT_STREAM_MAXSIZE

T = TypeVar("T")


class StreamClosedError(RuntimeError):
    """Raised when putting onto a closed stream."""


class ResultStream(Generic[T]):
    """Bounded, closable async channel."""

    def __init__(self, name: str, maxsize: int = DEFAULT_STREAM_MAXSIZE) -> None:
        self.name = name
        self._queue: asyncio.Queue[T] = asyncio.Queue(maxsize=maxsize)
        self._closed = asyncio.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    async def put(self, item: T) -> None:
        """Hand a batch to the consumer, waiting while the buffer is full."""
        if self.closed:
            raise StreamClosedError(f"stream {self.name} is closed")
        await self._queue.put(item)

    def close(self) -> None:
        """Signal that no more items will be put. Idempotent and non-blocking."""
        self._closed.set()

    def __aiter__(self) -> AsyncIterator[T]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[T]:
        while True:
            if not self._queue.empty():
                yield self._queue.get_nowait()
                continue
            if self.closed:
                return

            getter = asyncio.ensure_future(self._queue.get())
            closer = asyncio.ensure_future(self._closed.wait())
            try:
                await asyncio.wait({getter, closer}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                closer.cancel()
                if not getter.done():
                    getter.cancel()
                    # a cancelled get leaves its item in the queue
                    with contextlib.suppress(asyncio.CancelledError):
                        await getter

            if getter.done() and not getter.cancelled():
                yield getter.result()
