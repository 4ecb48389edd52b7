# tests/test_timeout.py
# SPDX-License-Identifier: Apache-2.0
"""
Timeout guard.

Asserts:
  • Operations settling in time return their value or raise their own error
  • A slow operation yields RequestTimeout (408, TIMEOUT) without waiting for it
  • The abandoned operation is not cancelled and still completes
  • A cancelled caller leaves the operation running and drains its late error
"""

import asyncio
import logging
import time

import pytest

from pipeline_sdk.core.errors import NotFound, RequestTimeout
from pipeline_sdk.policies.timeout import race_with_timeout

pytestmark = pytest.mark.asyncio


async def test_fast_operation_returns_value():
    async def work():
        await asyncio.sleep(0)
        return 42

    assert await race_with_timeout(work(), 1_000) == 42


async def test_operation_error_propagates():
    async def work():
        raise NotFound()

    with pytest.raises(NotFound):
        await race_with_timeout(work(), 1_000)


@pytest.mark.parametrize("timeout_ms", [None, 0, -5])
async def test_disabled_guard_awaits_directly(timeout_ms):
    async def work():
        await asyncio.sleep(0.01)
        return "done"

    assert await race_with_timeout(work(), timeout_ms) == "done"


async def test_slow_operation_times_out_without_waiting():
    finished = asyncio.Event()

    async def slow():
        await asyncio.sleep(0.3)
        finished.set()
        return "late"

    started = time.monotonic()
    with pytest.raises(RequestTimeout) as exc_info:
        await race_with_timeout(slow(), 20)
    elapsed = time.monotonic() - started

    assert exc_info.value.status == 408
    assert exc_info.value.code == "TIMEOUT"
    assert elapsed < 0.25, f"guard should return at the deadline, took {elapsed:.3f}s"
    assert not finished.is_set()

    await asyncio.wait_for(finished.wait(), timeout=2)
    assert finished.is_set(), "the abandoned operation keeps running to completion"


async def test_late_failure_is_drained():
    done = asyncio.Event()

    async def slow_failure():
        await asyncio.sleep(0.05)
        done.set()
        raise RuntimeError("late failure")

    with pytest.raises(RequestTimeout):
        await race_with_timeout(slow_failure(), 5)
    await asyncio.wait_for(done.wait(), timeout=2)
    await asyncio.sleep(0)


async def test_cancelled_caller_drains_abandoned_operation(caplog):
    done = asyncio.Event()

    async def slow_failure():
        await asyncio.sleep(0.05)
        done.set()
        raise RuntimeError("late failure")

    caller = asyncio.ensure_future(race_with_timeout(slow_failure(), 1_000))
    await asyncio.sleep(0.01)
    caller.cancel()
    with pytest.raises(asyncio.CancelledError):
        await caller

    with caplog.at_level(logging.DEBUG, logger="pipeline_sdk.policies.timeout"):
        await asyncio.wait_for(done.wait(), timeout=2)
        await asyncio.sleep(0.01)

    assert done.is_set(), "cancelling the caller does not cancel the operation"
    assert "late failure" in caplog.text, "the late exception is retrieved and logged"
