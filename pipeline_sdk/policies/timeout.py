# pipeline_sdk/policies/timeout.py
# SPDX-License-Identifier: Apache-2.0

"""
Timeout guard.

`race_with_timeout` stops *waiting* for an operation after `timeout_ms` and
raises `RequestTimeout` (408, TIMEOUT). It does not cancel the operation:
the underlying task keeps running on the loop and its side effects (writes,
outbound calls) may still complete after the caller has been answered.

Handlers that must not outlive their caller should enforce their own
deadline (e.g. `asyncio.timeout`) around the work they own.

Unlike `asyncio.wait_for`, the guard returns as soon as the deadline fires
instead of waiting for the cancelled task to unwind.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Optional, TypeVar

from pipeline_sdk.core.errors import RequestTimeout

T = TypeVar("T")

LOG = logging.getLogger(__name__)


def _drain(task: "asyncio.Future[Any]") -> None:
    # Retrieve the abandoned task's outcome so the loop does not report
    # "exception was never retrieved".
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        LOG.debug("operation finished after timeout with %s: %s", type(exc).__name__, exc)


async def race_with_timeout(operation: Awaitable[T], timeout_ms: Optional[float]) -> T:
    """
    Await `operation`, giving up after `timeout_ms` milliseconds.

    `timeout_ms` of None (or <= 0) disables the guard and awaits directly.

    Raises:
        RequestTimeout: if the operation has not settled in time.
        Any exception raised by the operation itself.
    """
    if timeout_ms is None or timeout_ms <= 0:
        return await operation

    task = asyncio.ensure_future(operation)
    try:
        done, _ = await asyncio.wait({task}, timeout=timeout_ms / 1000.0)
    except asyncio.CancelledError:
        # The caller went away; the operation is left running like a timeout
        task.add_done_callback(_drain)
        raise
    if task in done:
        return task.result()

    task.add_done_callback(_drain)
    raise RequestTimeout()


__all__ = ["race_with_timeout"]
