# tests/test_retry.py
# SPDX-License-Identifier: Apache-2.0
"""
Retry policy.

Asserts:
  • A handler failing k-1 times with a retryable status succeeds on attempt k
    after exactly k calls and k-1 warning-level retry log lines
  • Backoff doubles per attempt with no jitter
  • Non-retryable and unstructured failures are raised immediately
  • The last attempt's failure is raised unchanged
"""

import pytest

from pipeline_sdk.core.errors import BadRequest, ServiceUnavailable
from pipeline_sdk.policies.retry import RetryPolicy, retry_async
from tests.mock.mock_adapters import AsyncRecordingLogger, RecordingLogger

pytestmark = pytest.mark.asyncio


class Flaky:
    """Fails with `error` on the first `failures` calls, then returns "ok"."""

    def __init__(self, failures, error=ServiceUnavailable):
        self.failures = failures
        self.error = error
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error()
        return "ok"


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.mark.parametrize("k", [1, 2, 3, 4])
async def test_succeeds_on_attempt_k(k):
    fn, sleep, logger = Flaky(k - 1), SleepRecorder(), RecordingLogger()

    result = await retry_async(fn, RetryPolicy(attempts=4, delay_ms=100), logger=logger, request_id="r", sleep=sleep)

    assert result == "ok"
    assert fn.calls == k, f"handler should be invoked exactly {k} times"
    warnings = logger.at("warning")
    assert len(warnings) == k - 1, "one warning per retry"
    assert sleep.delays == [(100 * 2 ** i) / 1000.0 for i in range(k - 1)]


async def test_retry_log_lines():
    logger = AsyncRecordingLogger()
    await retry_async(Flaky(2), RetryPolicy(attempts=3, delay_ms=50), logger=logger, request_id="req-9", sleep=SleepRecorder())

    assert logger.messages("warning") == [
        "Retry attempt 1/3 after 50ms",
        "Retry attempt 2/3 after 100ms",
    ]
    assert logger.at("warning")[0].meta == {"request_id": "req-9", "attempt": 1, "delay_ms": 50}


async def test_exhausted_attempts_raise_last_error():
    fn, sleep = Flaky(10), SleepRecorder()
    with pytest.raises(ServiceUnavailable):
        await retry_async(fn, RetryPolicy(attempts=3), sleep=sleep)
    assert fn.calls == 3
    assert len(sleep.delays) == 2, "no sleep after the final attempt"


async def test_non_retryable_status_is_not_retried():
    fn, sleep = Flaky(1, BadRequest), SleepRecorder()
    with pytest.raises(BadRequest):
        await retry_async(fn, RetryPolicy(attempts=5), sleep=sleep)
    assert fn.calls == 1
    assert sleep.delays == []


async def test_unstructured_errors_are_not_retried_by_default():
    fn = Flaky(1, RuntimeError)
    with pytest.raises(RuntimeError):
        await retry_async(fn, RetryPolicy(attempts=5), sleep=SleepRecorder())
    assert fn.calls == 1


async def test_should_retry_predicate_replaces_status_check():
    seen = []

    def only_first(exc, attempt):
        seen.append((type(exc).__name__, attempt))
        return attempt == 1

    fn = Flaky(5, RuntimeError)
    with pytest.raises(RuntimeError):
        await retry_async(fn, RetryPolicy(attempts=5, should_retry=only_first), sleep=SleepRecorder())
    assert fn.calls == 2
    assert seen == [("RuntimeError", 1), ("RuntimeError", 2)]


async def test_custom_retry_statuses():
    fn = Flaky(1, BadRequest)
    assert await retry_async(fn, RetryPolicy(attempts=2, retry_on=(400,)), sleep=SleepRecorder()) == "ok"


async def test_policy_validation_and_backoff():
    with pytest.raises(ValueError):
        RetryPolicy(attempts=0)
    with pytest.raises(ValueError):
        RetryPolicy(attempts=1, delay_ms=-1)
    assert [RetryPolicy(attempts=4, delay_ms=25).backoff_ms(n) for n in (1, 2, 3)] == [25, 50, 100]
