# pipeline_sdk/adapters/base.py
# SPDX-License-Identifier: Apache-2.0

"""
Adapter contracts consumed by the pipeline.

The orchestrator depends only on these narrow capabilities; storage,
identity and log sinks are supplied by the application.

- AuthAdapter:   verify(auth_ctx) / has_role(principal, roles) /
                 optional is_tenant_valid(principal, auth_ctx)
- CacheAdapter:  get / set / delete / increment (atomic)
- LoggerAdapter: debug / info / warning / error / audit
- MetricsSink:   observe / counter (SIEM-safe, low-cardinality)

Every adapter method may be a plain function or a coroutine function; the
pipeline awaits results when needed.

Implementations MUST:
    - Keep `increment` atomic across concurrent callers and set the TTL only
      when the counter is created.
    - Avoid raising from logger/metrics methods where possible. The pipeline
      swallows such failures, but they are lost.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Dict, Mapping, Optional, Protocol, Sequence, Union, runtime_checkable

from pipeline_sdk.core.context import AuthContext, principal_id


# =============================================================================
# Audit record
# =============================================================================

@dataclass(frozen=True)
class AuditRecord:
    """
    One audit event per pipeline run.

    Attributes:
        request_id:
            Correlation id of the run.
        user:
            Principal at the time the run finished (ANONYMOUS if none).
        action:
            HTTP method, or "ACTION" for direct invocations.
        resource:
            Request path or action name.
        status:
            Final status code.
        success:
            True only on the success path.
        error_code:
            Machine code of the failure, None on success.
    """
    request_id: str
    user: Any
    action: str
    resource: str
    status: int
    success: bool
    duration_ms: float
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    resource_id: Optional[str] = None
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    error_code: Optional[str] = None
    meta: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "request_id": self.request_id,
            "user_id": principal_id(self.user),
            "action": self.action,
            "resource": self.resource,
            "status": self.status,
            "success": self.success,
            "duration_ms": round(self.duration_ms, 3),
            "timestamp": self.timestamp.isoformat(),
        }
        for key in ("resource_id", "ip", "user_agent", "error_code"):
            value = getattr(self, key)
            if value is not None:
                d[key] = value
        if self.meta:
            d["meta"] = dict(self.meta)
        return d


# =============================================================================
# Adapter protocols
# =============================================================================

@runtime_checkable
class AuthAdapter(Protocol):
    def verify(self, auth_ctx: AuthContext) -> Union[Any, Awaitable[Any]]:
        """Return the principal for this request, or None if unauthenticated."""
        ...

    def has_role(self, principal: Any, roles: Sequence[str]) -> Union[bool, Awaitable[bool]]: ...


class TenantAwareAuthAdapter(AuthAdapter, Protocol):
    def is_tenant_valid(self, principal: Any, auth_ctx: AuthContext) -> Union[bool, Awaitable[bool]]: ...


@runtime_checkable
class CacheAdapter(Protocol):
    async def get(self, key: str) -> Optional[Any]: ...
    async def set(self, key: str, value: Any, ttl_ms: Optional[int] = None) -> None: ...
    async def delete(self, key: str) -> None: ...

    async def increment(self, key: str, ttl_ms: int) -> int:
        """Atomically add 1 and return the new value; create at 1 with `ttl_ms`."""
        ...


@runtime_checkable
class LoggerAdapter(Protocol):
    def debug(self, message: str, meta: Optional[Mapping[str, Any]] = None) -> None: ...
    def info(self, message: str, meta: Optional[Mapping[str, Any]] = None) -> None: ...
    def warning(self, message: str, meta: Optional[Mapping[str, Any]] = None) -> None: ...

    def error(
        self,
        message: str,
        err: Optional[BaseException] = None,
        meta: Optional[Mapping[str, Any]] = None,
    ) -> None: ...

    def audit(self, record: AuditRecord) -> None: ...


# =============================================================================
# Metrics Interface (SIEM-safe, low-cardinality)
# =============================================================================

class MetricsSink(Protocol):
    """
    Metrics collection protocol.

    Implementations MUST:
        - Avoid PII.
        - Avoid high-cardinality labels (no paths with ids, no user ids).
    """
    def observe(
        self,
        *,
        component: str,
        op: str,
        ms: float,
        ok: bool,
        code: str = "OK",
        extra: Optional[Mapping[str, Any]] = None,
    ) -> None: ...

    def counter(
        self,
        *,
        component: str,
        name: str,
        value: int = 1,
        extra: Optional[Mapping[str, Any]] = None,
    ) -> None: ...


class NoopMetrics:
    """No-op metrics sink for tests or minimal deployments."""
    def observe(self, **_: Any) -> None: ...
    def counter(self, **_: Any) -> None: ...


__all__ = [
    "AuditRecord",
    "AuthAdapter",
    "TenantAwareAuthAdapter",
    "CacheAdapter",
    "LoggerAdapter",
    "MetricsSink",
    "NoopMetrics",
]
