# pipeline_sdk/policies/__init__.py
# SPDX-License-Identifier: Apache-2.0

"""Policy primitives used by the pipeline orchestrator."""

from pipeline_sdk.policies.cache import ActionCacheConfig, CacheConfig
from pipeline_sdk.policies.rate_limit import (
    DEFAULT_RATE_LIMITS,
    RateLimitDecision,
    RateLimitPolicy,
    check_rate_limit,
)
from pipeline_sdk.policies.retry import RetryPolicy, retry_async
from pipeline_sdk.policies.timeout import race_with_timeout
from pipeline_sdk.policies.validation import RawInput, ValidationConfig, validate_inputs, validate_schema

__all__ = [
    "ActionCacheConfig",
    "CacheConfig",
    "DEFAULT_RATE_LIMITS",
    "RateLimitDecision",
    "RateLimitPolicy",
    "check_rate_limit",
    "RetryPolicy",
    "retry_async",
    "race_with_timeout",
    "RawInput",
    "ValidationConfig",
    "validate_inputs",
    "validate_schema",
]
