"""Tests for result streams."""

import asyncio

import pytest
from consul_exporter.monitoring.streams import ResultStream, StreamClosedError


async def _collect(stream):
    return [item async for item in stream]


@pytest.mark.asyncio
async def test_stream_yields_items_then_stops_on_close():
    """Consumer receives every item and stops after close."""
    stream = ResultStream("test")
    consumer = asyncio.create_task(_collect(stream))
    for i in range(5):
        await stream.put(i)
    stream.close()
    assert await asyncio.wait_for(consumer, timeout=1) == [0, 1, 2, 3, 4]


@pytest.mark.asyncio
async def test_stream_closed_without_items():
    """A stream closed before any put ends immediately."""
    stream = ResultStream("test")
    stream.close()
    assert await asyncio.wait_for(_collect(stream), timeout=1) == []


@pytest.mark.asyncio
async def test_items_buffered_before_close_are_drained():
    """Items already queued are delivered even if close happens first."""
    stream = ResultStream("test", maxsize=3)
    await stream.put("a")
    await stream.put("b")
    stream.close()
    assert await _collect(stream) == ["a", "b"]


@pytest.mark.asyncio
async def test_put_after_close_raises():
    stream = ResultStream("test")
    stream.close()
    with pytest.raises(StreamClosedError):
        await stream.put(1)


@pytest.mark.asyncio
async def test_bounded_stream_applies_backpressure():
    """With maxsize 1 the producer waits until the consumer takes the item."""
    stream = ResultStream("test", maxsize=1)
    await stream.put(1)
    blocked = asyncio.create_task(stream.put(2))
    await asyncio.sleep(0.01)
    assert not blocked.done()

    consumer = asyncio.create_task(_collect(stream))
    await asyncio.wait_for(blocked, timeout=1)
    stream.close()
    assert await asyncio.wait_for(consumer, timeout=1) == [1, 2]


@pytest.mark.asyncio
async def test_close_is_idempotent():
    stream = ResultStream("test")
    stream.close()
    stream.close()
    assert stream.closed is True
