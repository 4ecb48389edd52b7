# pipeline_sdk/policies/rate_limit.py
# SPDX-License-Identifier: Apache-2.0

"""
Fixed-window rate limiting on top of a CacheAdapter counter.

One atomic `increment(key, window_ms)` per check; the request is admitted
iff the post-increment count is <= `max`. With no cache adapter the check
is fail-open (always admitted).

`reset_at` is `now + window_ms` taken at check time. It is an estimate for
client back-off headers, not a readback of the counter's real expiry.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from pipeline_sdk.core.async_bridge import maybe_await


@dataclass(frozen=True)
class RateLimitPolicy:
    """`max` requests per `window_ms` per key."""
    max: int
    window_ms: int = 60_000

    def __post_init__(self):
        if self.max < 0:
            raise ValueError("max must be >= 0")
        if self.window_ms <= 0:
            raise ValueError("window_ms must be positive")


DEFAULT_RATE_LIMITS: Mapping[str, RateLimitPolicy] = {
    "GET": RateLimitPolicy(max=200, window_ms=60_000),
    "POST": RateLimitPolicy(max=50, window_ms=60_000),
    "PUT": RateLimitPolicy(max=50, window_ms=60_000),
    "PATCH": RateLimitPolicy(max=50, window_ms=60_000),
    "DELETE": RateLimitPolicy(max=20, window_ms=60_000),
}


@dataclass(frozen=True)
class RateLimitDecision:
    """
    Attributes:
        allowed:  Whether the request is admitted.
        count:    Post-increment counter value (0 when no adapter).
        limit:    The policy's `max`.
        reset_at: Estimated window reset, epoch milliseconds.
    """
    allowed: bool
    count: int
    limit: int
    reset_at: int

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.count)

    def retry_after_seconds(self, now_ms: Optional[int] = None) -> int:
        now_ms = _now_ms() if now_ms is None else now_ms
        return max(0, math.ceil((self.reset_at - now_ms) / 1000.0))

    def headers(self, now_ms: Optional[int] = None) -> Dict[str, str]:
        """Response headers for a rejected request."""
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": str(self.reset_at),
            "Retry-After": str(self.retry_after_seconds(now_ms)),
        }


def _now_ms() -> int:
    return int(time.time() * 1000)


def build_rate_limit_key(method: str, path: str, identifier: str) -> str:
    return f"ratelimit:{method}:{path}:{identifier}"


def resolve_policy(
    method: str,
    explicit: Optional[RateLimitPolicy] = None,
    defaults: Optional[Mapping[str, RateLimitPolicy]] = None,
) -> Optional[RateLimitPolicy]:
    """
    Pick the policy for `method`: explicit > configured defaults > built-ins.

    Returns None when nothing applies (e.g. an unknown verb with no defaults);
    callers treat that as "no limit".
    """
    if explicit is not None:
        return explicit
    method = method.upper()
    if defaults and method in defaults:
        return defaults[method]
    return DEFAULT_RATE_LIMITS.get(method)


async def check_rate_limit(
    cache: Any,
    key: str,
    policy: RateLimitPolicy,
    *,
    clock: Callable[[], int] = _now_ms,
) -> RateLimitDecision:
    if cache is None:
        return RateLimitDecision(
            allowed=True, count=0, limit=policy.max, reset_at=clock() + policy.window_ms
        )

    count = int(await maybe_await(cache.increment(key, policy.window_ms)))
    return RateLimitDecision(
        allowed=count <= policy.max,
        count=count,
        limit=policy.max,
        reset_at=clock() + policy.window_ms,
    )


__all__ = [
    "RateLimitPolicy",
    "RateLimitDecision",
    "DEFAULT_RATE_LIMITS",
    "build_rate_limit_key",
    "resolve_policy",
    "check_rate_limit",
]
