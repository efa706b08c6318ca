from __future__ import annotations

import asyncio

import pytest

from askbridge.engine.readiness import ReadinessLatch, ReadinessState


@pytest.mark.asyncio
async def test_wait_times_out_when_never_ready() -> None:
    latch = ReadinessLatch()
    assert latch.state is ReadinessState.NOT_READY
    assert await latch.wait_until_ready(0.05) is False


@pytest.mark.asyncio
async def test_wait_returns_immediately_once_ready() -> None:
    latch = ReadinessLatch()
    latch.signal_ready()
    assert latch.state is ReadinessState.READY
    assert await latch.wait_until_ready(0) is True


@pytest.mark.asyncio
async def test_waiter_is_released_by_later_signal() -> None:
    latch = ReadinessLatch()
    waiter = asyncio.create_task(latch.wait_until_ready(2.0))
    await asyncio.sleep(0.01)
    assert not waiter.done()

    latch.signal_ready()
    assert await waiter is True


@pytest.mark.asyncio
async def test_reset_requires_a_new_signal() -> None:
    latch = ReadinessLatch()
    latch.signal_ready()
    latch.reset()

    assert latch.is_ready is False
    assert await latch.wait_until_ready(0.05) is False

    latch.signal_ready()
    assert await latch.wait_until_ready(0.05) is True


@pytest.mark.asyncio
async def test_waiter_survives_reset_and_sees_reactivation() -> None:
    latch = ReadinessLatch()
    waiter = asyncio.create_task(latch.wait_until_ready(2.0))
    await asyncio.sleep(0)
    latch.reset()
    latch.signal_ready()
    assert await waiter is True
