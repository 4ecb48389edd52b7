# pipeline_sdk/core/async_bridge.py
# SPDX-License-Identifier: Apache-2.0

"""
Sync/async glue for the pipeline.

Two small concerns live here:

- `maybe_await`: adapters, validators and hooks may be plain functions or
  coroutine functions; the orchestrator calls them uniformly through this.
- `AsyncBridge.run_sync`: drive a pipeline coroutine to completion from a
  synchronous call site (scripts, WSGI code, tests). Used by
  `WrappedAction.call_sync`.

Event Loop Strategy
-------------------
- No running loop in this thread: `asyncio.run(coro)`.
- A loop is already running (Jupyter, nested frameworks): run the coroutine
  on a fresh loop in a worker thread, inside a copy of the caller's
  `contextvars.Context`. The caller thread blocks on the result.

Adapters shared between the caller's loop and the worker loop must be
thread-safe; `InMemoryCache` is.
"""

from __future__ import annotations

import asyncio
import contextvars
import inspect
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Awaitable, Coroutine, Optional, TypeVar, Union

T = TypeVar("T")

LOG = logging.getLogger(__name__)

#: Worker threads used only when a loop is already running in the caller thread.
DEFAULT_MAX_WORKERS: int = 4


async def maybe_await(value: Union[T, Awaitable[T]]) -> T:
    """Await `value` if it is awaitable, else return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


class AsyncBridge:
    """Run pipeline coroutines from synchronous code."""

    _lock = threading.RLock()
    _executor: Optional[ThreadPoolExecutor] = None
    _max_workers: int = DEFAULT_MAX_WORKERS

    @classmethod
    def configure(cls, max_workers: int) -> None:
        if max_workers <= 0:
            raise ValueError("max_workers must be a positive integer")
        with cls._lock:
            cls._max_workers = max_workers

    @classmethod
    def _get_or_create_executor(cls) -> ThreadPoolExecutor:
        # Caller must hold cls._lock.
        if cls._executor is None:
            cls._executor = ThreadPoolExecutor(
                max_workers=cls._max_workers,
                thread_name_prefix="pipeline_sync_",
            )
            LOG.debug("AsyncBridge: created executor (max_workers=%d)", cls._max_workers)
        return cls._executor

    @classmethod
    def run_sync(cls, coro: Coroutine[Any, Any, T]) -> T:
        """
        Execute `coro` and return its result, blocking the calling thread.

        Exceptions raised by the coroutine propagate unchanged.
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(coro)

        LOG.debug("AsyncBridge.run_sync: running loop detected; using worker thread")
        ctx = contextvars.copy_context()
        with cls._lock:
            executor = cls._get_or_create_executor()
        return executor.submit(ctx.run, asyncio.run, coro).result()

    @classmethod
    def shutdown(cls, *, wait: bool = False) -> None:
        """Release the worker executor, if one was created. Safe to call repeatedly."""
        with cls._lock:
            if cls._executor is not None:
                cls._executor.shutdown(wait=wait)
                cls._executor = None


def run_sync(coro: Coroutine[Any, Any, T]) -> T:
    """Module-level shortcut for `AsyncBridge.run_sync`."""
    return AsyncBridge.run_sync(coro)


__all__ = [
    "AsyncBridge",
    "DEFAULT_MAX_WORKERS",
    "maybe_await",
    "run_sync",
]
