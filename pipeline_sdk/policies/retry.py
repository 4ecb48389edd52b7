# pipeline_sdk/policies/retry.py
# SPDX-License-Identifier: Apache-2.0
"""
Async retry with pure exponential backoff.

Retryability:
    - If `policy.should_retry(exc, attempt)` is set, it alone decides.
    - Otherwise only ApiError instances whose status is in `policy.retry_on`
      are retried. Unstructured exceptions are never retried by default.

Backoff after failed attempt N is `delay_ms * 2 ** (N - 1)`; no jitter.
A non-retryable failure, or a failure on the last attempt, is re-raised
immediately without sleeping.

Usage:
    policy = RetryPolicy(attempts=3)
    result = await retry_async(lambda: call_upstream(), policy, logger=log)
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Tuple

from pipeline_sdk.adapters.logger import safe_log
from pipeline_sdk.core.errors import ApiError

LOG = logging.getLogger(__name__)

DEFAULT_RETRY_DELAY_MS = 100
DEFAULT_RETRY_STATUSES: Tuple[int, ...] = (502, 503, 504)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry configuration.

    Attributes:
        attempts:     Total tries including the first one.
        delay_ms:     Base backoff in milliseconds.
        retry_on:     Status codes that make an ApiError retryable.
        should_retry: Optional predicate (error, attempt_number) -> bool that
                      replaces the status check entirely.
    """

    attempts: int
    delay_ms: int = DEFAULT_RETRY_DELAY_MS
    retry_on: Tuple[int, ...] = DEFAULT_RETRY_STATUSES
    should_retry: Optional[Callable[[BaseException, int], bool]] = None

    def __post_init__(self):
        if self.attempts < 1:
            raise ValueError("attempts must be >= 1")
        if self.delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")
        object.__setattr__(self, "retry_on", tuple(int(s) for s in self.retry_on))

    def backoff_ms(self, attempt: int) -> int:
        """Delay after failed attempt number `attempt` (1-based)."""
        return self.delay_ms * (2 ** (attempt - 1))

    def is_retryable(self, exc: BaseException, attempt: int) -> bool:
        if self.should_retry is not None:
            return bool(self.should_retry(exc, attempt))
        return isinstance(exc, ApiError) and exc.status in self.retry_on


async def retry_async(
    fn: Callable[[], Awaitable[Any]],
    policy: RetryPolicy,
    *,
    logger: Any = None,
    request_id: Optional[str] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> Any:
    """
    Invoke `fn` until it succeeds or a failure is not retried.

    Args:
        fn:         Zero-arg coroutine factory; called once per attempt.
        policy:     RetryPolicy controlling attempts and backoff.
        logger:     Optional LoggerAdapter; receives one warning per retry.
        request_id: Correlation id added to the retry log metadata.
        sleep:      Sleep coroutine (seconds); replaceable in tests.

    Raises:
        The failing attempt's exception, unchanged.
    """
    attempts = policy.attempts
    for attempt in range(1, attempts + 1):
        try:
            return await fn()
        except Exception as exc:
            if not policy.is_retryable(exc, attempt) or attempt >= attempts:
                raise

            delay = policy.backoff_ms(attempt)
            LOG.debug("attempt %d/%d failed with %s; retrying", attempt, attempts, type(exc).__name__)
            await safe_log(
                logger,
                "warning",
                f"Retry attempt {attempt}/{attempts} after {delay}ms",
                {"request_id": request_id, "attempt": attempt, "delay_ms": delay},
            )
            await sleep(delay / 1000.0)


__all__ = [
    "DEFAULT_RETRY_DELAY_MS",
    "DEFAULT_RETRY_STATUSES",
    "RetryPolicy",
    "retry_async",
]
