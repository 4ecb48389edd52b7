# pipeline_sdk/adapters/__init__.py
# SPDX-License-Identifier: Apache-2.0

"""Adapter contracts and reference implementations."""

from pipeline_sdk.adapters.base import (
    AuditRecord,
    AuthAdapter,
    CacheAdapter,
    LoggerAdapter,
    MetricsSink,
    NoopMetrics,
    TenantAwareAuthAdapter,
)
from pipeline_sdk.adapters.logger import NoopLogger, StdlibLogger
from pipeline_sdk.adapters.memory import InMemoryCache

__all__ = [
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
]
