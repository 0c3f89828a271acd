"""
Bounded producer/consumer channel for one streaming turn.

The session runs the turn in a producer task that pushes events into a
bounded queue; the caller consumes them through ``TurnStream``. Closing the
stream early cancels the producer, which unblocks it even while it is waiting
for queue space, and runs the release callback exactly once.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from ..models.events import Failed, StreamEvent, TurnOutcome
from ..reliability.errors import RequestCancelledError

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL_SIZE = 16


class _End:
    pass


class _Raise:
    def __init__(self, error: BaseException):
        self.error = error


_END = _End()


class TurnStream:
    """Async iterator over the events of one turn.

    Usage::

        stream = await session.send_message_stream(key, "hi", "prompt-1", token)
        async for event in stream:
            ...
        stream.outcome  # Committed | Stopped | Blocked | Failed
    """

    def __init__(self, maxsize: int = DEFAULT_CHANNEL_SIZE,
                 on_release: Optional[Callable[[], None]] = None):
        self._queue: "asyncio.Queue[Any]" = asyncio.Queue(maxsize=maxsize)
        self._producer: Optional[asyncio.Task] = None
        self._on_release = on_release
        self._released = False
        self._finished = False
        self.outcome: Optional[TurnOutcome] = None

    # Producer side

    def start(self, producer: Callable[["TurnStream"], Awaitable[None]]) -> None:
        self._producer = asyncio.ensure_future(self._run(producer))
        # Covers a producer cancelled before its first step
        self._producer.add_done_callback(lambda _task: self.release())

    async def _run(self, producer: Callable[["TurnStream"], Awaitable[None]]) -> None:
        try:
            await producer(self)
            await self._queue.put(_END)
        except asyncio.CancelledError:
            if self.outcome is None:
                self.outcome = Failed(RequestCancelledError("Turn stream was closed"))
            raise
        except Exception as error:  # noqa: BLE001
            if self.outcome is None:
                self.outcome = Failed(error)
            await self._queue.put(_Raise(error))
        finally:
            self.release()

    async def send(self, event: StreamEvent) -> None:
        await self._queue.put(event)

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        if self._on_release is not None:
            try:
                self._on_release()
            except RuntimeError as e:
                logger.warning(f"Turn release callback failed: {e}")

    @property
    def released(self) -> bool:
        return self._released

    # Consumer side

    def __aiter__(self) -> "TurnStream":
        return self

    async def __anext__(self) -> StreamEvent:
        if self._finished:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _END:
            self._finished = True
            raise StopAsyncIteration
        if isinstance(item, _Raise):
            self._finished = True
            raise item.error
        return item

    async def aclose(self) -> None:
        """Stop the turn early. Safe to call more than once."""
        self._finished = True
        producer = self._producer
        if producer is not None and not producer.done():
            producer.cancel()
            try:
                await producer
            except asyncio.CancelledError:
                pass
            except Exception as e:  # noqa: BLE001
                logger.debug(f"Producer ended with {type(e).__name__} during close")
        self.release()

    async def collect(self) -> list:
        """Drain the stream into a list of events."""
        return [event async for event in self]

    async def __aenter__(self) -> "TurnStream":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
