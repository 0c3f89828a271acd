"""Unit tests for the bounded turn stream."""

import asyncio

import pytest

from resilient_chat.models import ChunkEvent, Failed, RetryEvent
from resilient_chat.reliability import RequestCancelledError
from resilient_chat.streaming import TurnStream


class ReleaseCounter:
    def __init__(self):
        self.count = 0

    def __call__(self):
        self.count += 1


@pytest.mark.asyncio
async def test_events_arrive_in_order():
    released = ReleaseCounter()
    stream = TurnStream(on_release=released)

    async def producer(channel):
        await channel.send(ChunkEvent())
        await channel.send(RetryEvent())
        await channel.send(ChunkEvent())

    stream.start(producer)
    events = await stream.collect()

    assert [type(event) for event in events] == [ChunkEvent, RetryEvent, ChunkEvent]
    assert released.count == 1
    assert await stream.collect() == []


@pytest.mark.asyncio
async def test_producer_error_reaches_consumer():
    released = ReleaseCounter()
    stream = TurnStream(on_release=released)

    async def producer(channel):
        await channel.send(ChunkEvent())
        raise ValueError("bad stream")

    stream.start(producer)

    assert isinstance(await stream.__anext__(), ChunkEvent)
    with pytest.raises(ValueError):
        await stream.__anext__()
    assert isinstance(stream.outcome, Failed)
    assert released.count == 1


@pytest.mark.asyncio
async def test_close_unblocks_producer_waiting_for_space():
    released = ReleaseCounter()
    stream = TurnStream(maxsize=1, on_release=released)
    sent = []

    async def producer(channel):
        for index in range(10):
            await channel.send(ChunkEvent())
            sent.append(index)

    stream.start(producer)
    await stream.__anext__()
    await asyncio.sleep(0.01)

    await asyncio.wait_for(stream.aclose(), timeout=1)

    assert len(sent) < 10
    assert released.count == 1
    assert isinstance(stream.outcome, Failed)
    assert isinstance(stream.outcome.error, RequestCancelledError)
    with pytest.raises(StopAsyncIteration):
        await stream.__anext__()


@pytest.mark.asyncio
async def test_aclose_is_idempotent():
    released = ReleaseCounter()
    stream = TurnStream(on_release=released)

    async def producer(channel):
        await asyncio.sleep(10)

    stream.start(producer)
    await stream.aclose()
    await stream.aclose()

    assert released.count == 1
    assert stream.released


@pytest.mark.asyncio
async def test_context_manager_closes():
    released = ReleaseCounter()

    async def producer(channel):
        await channel.send(ChunkEvent())
        await asyncio.sleep(10)

    async with TurnStream(on_release=released) as stream:
        stream.start(producer)
        await stream.__anext__()

    assert released.count == 1
