"""
Single-pass byte stream connecting an export producer to its consumer.

The producer task writes encoded CSV chunks; the consumer iterates them once.
A bounded queue between the two applies backpressure: when the consumer is
slow, ``put`` blocks and the producer stops pulling rows from the database.
"""

import asyncio
from enum import Enum
from typing import AsyncIterator, Optional

from csvexport.core.logging import get_logger
from csvexport.export.exceptions import StreamConsumedError

logger = get_logger(__name__)

_END = object()


class StreamState(str, Enum):
    """Lifecycle of an export stream."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_done(self) -> bool:
        return self in (StreamState.SUCCEEDED, StreamState.FAILED)


class _Failure:
    __slots__ = ("error",)

    def __init__(self, error: BaseException):
        self.error = error


class CsvExportStream:
    """
    Write-once, read-once stream of encoded CSV chunks.

    Iterating yields ``bytes`` until the producer finishes, then stops; if the
    producer fails, iteration raises the producer's exception after the chunks
    written before the failure.
    """

    def __init__(self, buffer_size: int = 16):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=buffer_size)
        self._state = StreamState.PENDING
        self._consumed = False
        self._closed = False
        self._producer: Optional[asyncio.Task] = None
        self.error: Optional[BaseException] = None
        self.rows_written = 0
        self.bytes_sent = 0

    @property
    def state(self) -> StreamState:
        return self._state

    def attach_producer(self, task: asyncio.Task) -> None:
        """Bind the task feeding this stream so ``aclose`` can stop it."""
        self._producer = task

    async def put(self, chunk: bytes) -> None:
        """Queue a chunk, waiting while the buffer is full."""
        if chunk:
            await self._queue.put(chunk)

    async def finish(self) -> None:
        """Signal that no more chunks follow."""
        await self._queue.put(_END)

    async def fail(self, error: BaseException) -> None:
        """Terminate the stream with an error."""
        await self._queue.put(_Failure(error))

    def __aiter__(self) -> AsyncIterator[bytes]:
        if self._consumed:
            raise StreamConsumedError("Export stream can only be consumed once")
        self._consumed = True
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[bytes]:
        self._state = StreamState.RUNNING
        while True:
            item = await self._queue.get()
            if item is _END:
                self._state = StreamState.SUCCEEDED
                return
            if isinstance(item, _Failure):
                self._state = StreamState.FAILED
                self.error = item.error
                raise item.error
            self.bytes_sent += len(item)
            yield item

    async def read_all(self) -> bytes:
        """Consume the whole stream into memory."""
        return b"".join([chunk async for chunk in self])

    async def aclose(self) -> None:
        """
        Stop the producer if it is still running.

        Safe to call more than once and after normal completion.
        """
        if self._closed:
            return
        self._closed = True

        if not self._state.is_done:
            self._state = StreamState.FAILED
        if self._producer is not None and not self._producer.done():
            logger.debug("Cancelling export producer")
            self._producer.cancel()
            try:
                await self._producer
            except asyncio.CancelledError:
                pass
