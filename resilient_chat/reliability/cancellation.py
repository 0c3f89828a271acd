"""
Cooperative cancellation for retries and streaming reads.

A ``CancellationToken`` is shared between the caller and everything doing
work on its behalf. Cancelling it wakes any pending ``cancellable_sleep`` and
ends ``iterate_with_cancellation`` loops with ``RequestCancelledError``.
"""

import asyncio
import logging
from typing import AsyncIterator, Callable, List, Optional, TypeVar

from .errors import RequestCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """One-shot cancellation flag with async waiters and callbacks."""

    def __init__(self):
        self._cancelled = False
        self._reason = None
        self._event: Optional[asyncio.Event] = None
        self._callbacks: List[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self):
        return self._reason

    def cancel(self, reason=None) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._reason = reason
        if self._event is not None:
            self._event.set()
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception as e:  # noqa: BLE001
                logger.warning(f"Cancellation callback failed: {e}")

    def add_callback(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Run ``callback`` on cancel (immediately if already cancelled).

        Returns a function that unregisters it.
        """
        if self._cancelled:
            callback()
            return lambda: None
        self._callbacks.append(callback)

        def remove():
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return remove

    async def wait(self) -> None:
        if self._cancelled:
            return
        if self._event is None:
            self._event = asyncio.Event()
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise RequestCancelledError(reason=self._reason)


async def cancellable_sleep(delay_ms: float, token: Optional[CancellationToken] = None) -> None:
    """Sleep for ``delay_ms``; raise ``RequestCancelledError`` as soon as the token fires."""
    if token is None:
        await asyncio.sleep(max(0.0, delay_ms) / 1000)
        return

    token.raise_if_cancelled()
    waiter = asyncio.ensure_future(token.wait())
    try:
        await asyncio.wait({waiter}, timeout=max(0.0, delay_ms) / 1000)
    finally:
        if not waiter.done():
            waiter.cancel()
    token.raise_if_cancelled()


async def iterate_with_cancellation(
    iterator: AsyncIterator[T], token: Optional[CancellationToken] = None
) -> AsyncIterator[T]:
    """Yield from ``iterator``, aborting a pending read when the token fires."""
    source = iterator.__aiter__()
    try:
        if token is None:
            async for item in source:
                yield item
            return

        while True:
            token.raise_if_cancelled()
            next_item = asyncio.ensure_future(source.__anext__())
            waiter = asyncio.ensure_future(token.wait())
            try:
                await asyncio.wait({next_item, waiter}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                waiter.cancel()
                if not next_item.done():
                    next_item.cancel()
                    await asyncio.wait({next_item})
            if next_item.cancelled():
                raise RequestCancelledError(reason=token.reason)
            try:
                item = next_item.result()
            except StopAsyncIteration:
                return
            yield item
    finally:
        aclose = getattr(source, "aclose", None)
        if aclose is not None:
            try:
                await aclose()
            except RuntimeError:
                # Generator still running after a cancelled read
                pass
