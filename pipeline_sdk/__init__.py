# pipeline_sdk/__init__.py
# SPDX-License-Identifier: Apache-2.0

"""
Pipeline SDK - Public API

Wraps Starlette endpoints and plain async "actions" in a fixed pipeline of
authentication, tenant scoping, rate limiting, input validation, timeouts,
retries, caching, structured logging and audit. Everything commonly needed
by applications is re-exported here.
"""

from pipeline_sdk.adapters import (
    AuditRecord,
    AuthAdapter,
    CacheAdapter,
    InMemoryCache,
    LoggerAdapter,
    MetricsSink,
    NoopLogger,
    NoopMetrics,
    StdlibLogger,
    TenantAwareAuthAdapter,
)
from pipeline_sdk.core.context import (
    ANONYMOUS,
    ActionContext,
    ApiContext,
    AuthContext,
    Principal,
    generate_request_id,
)
from pipeline_sdk.core.errors import (
    ApiError,
    BadGateway,
    BadRequest,
    ConfigurationError,
    Conflict,
    Forbidden,
    GatewayTimeout,
    InternalError,
    NotFound,
    RequestTimeout,
    ServiceUnavailable,
    TooManyRequests,
    Unauthorized,
    ValidationFailed,
    error_for_status,
)
from pipeline_sdk.core.outcome import Failure, Outcome, Success
from pipeline_sdk.core.redact import redact
from pipeline_sdk.policies import (
    ActionCacheConfig,
    CacheConfig,
    RateLimitPolicy,
    RetryPolicy,
    ValidationConfig,
)
from pipeline_sdk.response import (
    ActionResponse,
    ApiResponse,
    ResponseTransformers,
)
from pipeline_sdk.wrapper import (
    ActionWrapper,
    ApiWrapper,
    PipelineAdapters,
    PipelineDefaults,
    WrapperConfig,
    WrapperOptions,
    create_action_wrapper,
    create_api_wrapper,
)

__version__ = "1.0.0"

__all__ = [
    "__version__",
    # Adapters
    "AuditRecord",
    "AuthAdapter",
    "TenantAwareAuthAdapter",
    "CacheAdapter",
    "LoggerAdapter",
    "MetricsSink",
    "NoopMetrics",
    "StdlibLogger",
    "NoopLogger",
    "InMemoryCache",
    # Context
    "ANONYMOUS",
    "ActionContext",
    "ApiContext",
    "AuthContext",
    "Principal",
    "generate_request_id",
    # Errors
    "ApiError",
    "BadRequest",
    "Unauthorized",
    "Forbidden",
    "NotFound",
    "Conflict",
    "ValidationFailed",
    "TooManyRequests",
    "RequestTimeout",
    "InternalError",
    "BadGateway",
    "ServiceUnavailable",
    "GatewayTimeout",
    "ConfigurationError",
    "error_for_status",
    # Outcomes
    "Success",
    "Failure",
    "Outcome",
    "redact",
    # Policies
    "ActionCacheConfig",
    "CacheConfig",
    "RateLimitPolicy",
    "RetryPolicy",
    "ValidationConfig",
    # Responses
    "ActionResponse",
    "ApiResponse",
    "ResponseTransformers",
    # Wrappers
    "ActionWrapper",
    "ApiWrapper",
    "PipelineAdapters",
    "PipelineDefaults",
    "WrapperConfig",
    "WrapperOptions",
    "create_action_wrapper",
    "create_api_wrapper",
]
