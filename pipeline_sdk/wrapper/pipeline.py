# pipeline_sdk/wrapper/pipeline.py
# SPDX-License-Identifier: Apache-2.0

"""
Pipeline orchestrator shared by the HTTP and direct-invocation wrappers.

A wrapper describes one invocation (`Invocation`) and injects a
`ResultConverter`; the orchestrator sequences the cross-cutting concerns
around the business handler in a fixed order:

    start log
      -> authentication            (options.auth is not None)
      -> tenant check              (options.tenant_scoped)
      -> rate limit                (cache adapter present, policy not False)
      -> input validation          (params / query / body)
      -> context construction
      -> handler                   (retry, each attempt under the timeout)
      -> audit -> converter.on_success(Success(result)) -> on_complete
      -> completion log

Any failure in the steps above (or in the success conversion) enters the
failure path exactly once: it is canonicalized to a `Failure`, logged on a
single line, audited, and handed to `converter.on_error`.

Terminal paths
--------------
- success:      one completion log line, one audit record (200)
- failure:      one failure log line, one audit record (error status)
- rate limited: one warning log line, one audit record (429); the handler
                is never invoked and nothing is retried. A converter
                error other than an ApiError enters the failure path
                without a second audit record

`ConfigurationError` (auth required without an auth adapter, tenant scoping
without `is_tenant_valid`) is logged and audited, then re-raised instead of
being translated.

Logging, audit and metrics are best-effort: adapter failures are swallowed
and reported on this module's logger.

Concurrency
-----------
Every step awaits the previous one; nothing fans out. The orchestrator holds
no locks and no state between runs. Cross-request consistency (rate-limit
counters, cache entries) is the adapters' job.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    TypeVar,
    Union,
)

from pipeline_sdk.adapters.base import AuditRecord, MetricsSink, NoopMetrics
from pipeline_sdk.adapters.logger import safe_audit, safe_log
from pipeline_sdk.core.async_bridge import maybe_await
from pipeline_sdk.core.context import ANONYMOUS, AuthContext
from pipeline_sdk.core.error_context import attach_context
from pipeline_sdk.core.errors import (
    ApiError,
    ConfigurationError,
    Forbidden,
    TooManyRequests,
    Unauthorized,
)
from pipeline_sdk.core.outcome import Failure, Success
from pipeline_sdk.policies.rate_limit import (
    RateLimitDecision,
    RateLimitPolicy,
    build_rate_limit_key,
    check_rate_limit,
    resolve_policy,
)
from pipeline_sdk.policies.retry import RetryPolicy, retry_async
from pipeline_sdk.policies.timeout import race_with_timeout
from pipeline_sdk.policies.validation import RawInput, ValidationConfig, validate_inputs

LOG = logging.getLogger(__name__)

R = TypeVar("R")

#: Environment override for the default per-attempt timeout.
PIPELINE_TIMEOUT_ENV = "PIPELINE_SDK_TIMEOUT_MS"

_CONFIGURATION_ERROR_CODE = "CONFIGURATION_ERROR"


# =============================================================================
# Configuration
# =============================================================================

@dataclass(frozen=True)
class PipelineAdapters:
    """
    Injected collaborators. Every adapter is optional:

    - no auth adapter: auth-required invocations raise ConfigurationError
    - no cache adapter: rate limiting and caching are skipped (fail-open)
    - no logger: nothing is logged or audited
    """
    auth: Any = None
    cache: Any = None
    logger: Any = None
    metrics: MetricsSink = field(default_factory=NoopMetrics)


@dataclass(frozen=True)
class PipelineDefaults:
    """
    Wrapper-wide defaults.

    Attributes:
        timeout_ms:
            Per-attempt handler timeout when the invocation sets none.
        rate_limit:
            Per-method policies overriding the built-in verb defaults.
    """
    timeout_ms: Optional[int] = None
    rate_limit: Mapping[str, RateLimitPolicy] = field(default_factory=dict)

    def __post_init__(self):
        if self.timeout_ms is not None and self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")
        object.__setattr__(
            self,
            "rate_limit",
            {str(k).upper(): v for k, v in dict(self.rate_limit or {}).items()},
        )

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        **overrides: Any,
    ) -> "PipelineDefaults":
        """
        Build defaults from the environment; explicit `overrides` win.

        Reads PIPELINE_SDK_TIMEOUT_MS (positive integer, milliseconds).
        """
        env = os.environ if environ is None else environ
        kwargs: Dict[str, Any] = {}
        raw = env.get(PIPELINE_TIMEOUT_ENV)
        if raw:
            try:
                kwargs["timeout_ms"] = int(raw)
            except ValueError as exc:
                raise ValueError(f"{PIPELINE_TIMEOUT_ENV} must be an integer, got {raw!r}") from exc
        kwargs.update(overrides)
        return cls(**kwargs)


@dataclass(frozen=True)
class PipelineOptions:
    """
    Per-invocation policy.

    Attributes:
        auth:
            None disables authentication. An empty sequence admits any
            authenticated principal; a non-empty one requires those roles.
        tenant_scoped:
            Require `auth.is_tenant_valid(principal, auth_ctx)`.
        rate_limit:
            A RateLimitPolicy, None for the method default, or False to disable.
        timeout_ms:
            Per-attempt timeout; falls back to PipelineDefaults.timeout_ms.
        retry:
            RetryPolicy, or None for a single attempt.
        audit:
            Emit an audit record (default True).
        validation:
            Per-slot schemas.
    """
    auth: Optional[Sequence[str]] = None
    tenant_scoped: bool = False
    rate_limit: Union[RateLimitPolicy, bool, None] = None
    timeout_ms: Optional[int] = None
    retry: Optional[RetryPolicy] = None
    audit: bool = True
    validation: Optional[ValidationConfig] = None

    def __post_init__(self):
        if self.rate_limit is True:
            raise ValueError("rate_limit must be a RateLimitPolicy, None or False")
        if self.timeout_ms is not None and self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")
        if self.auth is not None:
            if isinstance(self.auth, str):
                raise ValueError("auth must be a sequence of role names, not a string")
            object.__setattr__(self, "auth", tuple(self.auth))


# =============================================================================
# Converter contract
# =============================================================================

@dataclass(frozen=True)
class RunMeta:
    """What converters and completion hooks know about a finished run."""
    request_id: str
    method: str
    path: str
    user: Any
    duration_ms: float


class ResultConverter(Protocol[R]):
    """
    Turns the orchestrator's outcome into the caller's output shape.

    Methods may be sync or async. `on_success` receives the handler result
    as `Success(value)`, `on_error` the canonical Failure; `failure.cause`
    is for server-side use only.
    """
    def on_success(self, outcome: Success[Any], meta: RunMeta) -> Union[R, Awaitable[R]]: ...
    def on_error(self, failure: Failure, meta: RunMeta) -> Union[R, Awaitable[R]]: ...
    def on_rate_limited(self, decision: RateLimitDecision, meta: RunMeta) -> Union[R, Awaitable[R]]: ...


@dataclass
class Invocation:
    """
    One call through the pipeline, as described by a wrapper.

    Attributes:
        get_auth_context:
            () -> AuthContext (or mapping with headers/cookies); may be async.
        get_identifier:
            principal -> rate-limit identifier.
        get_raw_input:
            () -> RawInput; may be async.
        build_context:
            (principal, {"params", "query", "body"}) -> handler context.
        execute:
            context -> handler result; called once per attempt.
        on_complete:
            Optional (output, meta) hook run after a successful conversion
            (used for cache writes).
        started_at:
            time.monotonic() at entry; durations are measured from here.
    """
    request_id: str
    method: str
    path: str
    get_auth_context: Callable[[], Any]
    get_identifier: Callable[[Any], str]
    get_raw_input: Callable[[], Any]
    build_context: Callable[[Any, Dict[str, Any]], Any]
    execute: Callable[[Any], Any]
    converter: ResultConverter[Any]
    options: PipelineOptions = field(default_factory=PipelineOptions)
    on_complete: Optional[Callable[[Any, RunMeta], Any]] = None
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    started_at: float = field(default_factory=time.monotonic)


# =============================================================================
# Orchestrator
# =============================================================================

class Pipeline:
    """
    Runs invocations. Stateless between runs; safe to share.

    Example
    -------
        pipeline = Pipeline(PipelineAdapters(auth=my_auth, cache=InMemoryCache()))
        output = await pipeline.run(invocation)
    """

    _component = "pipeline"

    def __init__(
        self,
        adapters: Optional[PipelineAdapters] = None,
        defaults: Optional[PipelineDefaults] = None,
    ) -> None:
        self._adapters = adapters or PipelineAdapters()
        self._defaults = defaults or PipelineDefaults()

    @property
    def adapters(self) -> PipelineAdapters:
        return self._adapters

    @property
    def defaults(self) -> PipelineDefaults:
        return self._defaults

    # ------------------------------------------------------------------ #
    # Instrumentation
    # ------------------------------------------------------------------ #

    def _record(self, op: str, t0: float, ok: bool, *, code: str = "OK") -> None:
        """
        Emit a timing metric for a run.

        Any failures in metrics emission are swallowed.
        """
        try:
            ms = (time.monotonic() - t0) * 1000.0
            self._adapters.metrics.observe(
                component=self._component,
                op=op,
                ms=ms,
                ok=ok,
                code=code,
            )
        except Exception:  # noqa: BLE001
            LOG.debug("metrics observe failed", exc_info=True)

    def _count(self, name: str) -> None:
        try:
            self._adapters.metrics.counter(component=self._component, name=name)
        except Exception:  # noqa: BLE001
            LOG.debug("metrics counter failed", exc_info=True)

    async def _log(
        self,
        level: str,
        message: str,
        meta: Mapping[str, Any],
        err: Optional[BaseException] = None,
    ) -> None:
        await safe_log(self._adapters.logger, level, message, meta, err)

    async def _audit(
        self,
        inv: Invocation,
        user: Any,
        duration_ms: float,
        status: int,
        success: bool,
        error_code: Optional[str] = None,
    ) -> None:
        if not inv.options.audit or self._adapters.logger is None:
            return
        record = AuditRecord(
            request_id=inv.request_id,
            user=user,
            action=inv.method,
            resource=inv.path,
            status=status,
            success=success,
            duration_ms=duration_ms,
            ip=inv.ip,
            user_agent=inv.user_agent,
            error_code=error_code,
        )
        await safe_audit(self._adapters.logger, record)

    @staticmethod
    def _elapsed_ms(inv: Invocation) -> float:
        return (time.monotonic() - inv.started_at) * 1000.0

    def _meta(self, inv: Invocation, user: Any) -> RunMeta:
        return RunMeta(
            request_id=inv.request_id,
            method=inv.method,
            path=inv.path,
            user=user,
            duration_ms=self._elapsed_ms(inv),
        )

    # ------------------------------------------------------------------ #
    # Steps
    # ------------------------------------------------------------------ #

    async def _auth_context(self, inv: Invocation) -> AuthContext:
        return AuthContext.coerce(await maybe_await(inv.get_auth_context()))

    async def _authenticate(self, inv: Invocation) -> Any:
        auth = self._adapters.auth
        if auth is None:
            raise ConfigurationError("Auth adapter not configured but auth is required")
        auth_ctx = await self._auth_context(inv)
        principal = await maybe_await(auth.verify(auth_ctx))
        if principal is None:
            raise Unauthorized()
        return principal

    async def _check_roles(self, principal: Any, roles: Sequence[str]) -> None:
        if not roles:
            return
        allowed = await maybe_await(self._adapters.auth.has_role(principal, list(roles)))
        if not allowed:
            raise Forbidden()

    async def _check_tenant(self, inv: Invocation, user: Any) -> None:
        check = getattr(self._adapters.auth, "is_tenant_valid", None)
        if not callable(check):
            raise ConfigurationError(
                "is_tenant_valid must be defined on the auth adapter when tenant_scoped is set"
            )
        auth_ctx = await self._auth_context(inv)
        if not await maybe_await(check(user, auth_ctx)):
            raise Forbidden("Tenant context required")

    async def _rate_limit(self, inv: Invocation, user: Any) -> Optional[RateLimitDecision]:
        """Return the rejecting decision, or None when admitted or not applicable."""
        opts = inv.options
        cache = self._adapters.cache
        if opts.rate_limit is False or cache is None:
            return None
        explicit = opts.rate_limit if isinstance(opts.rate_limit, RateLimitPolicy) else None
        policy = resolve_policy(inv.method, explicit, self._defaults.rate_limit)
        if policy is None:
            return None
        key = build_rate_limit_key(inv.method, inv.path, inv.get_identifier(user))
        decision = await check_rate_limit(cache, key, policy)
        return None if decision.allowed else decision

    async def _execute(self, inv: Invocation, ctx: Any) -> Any:
        opts = inv.options
        timeout_ms = opts.timeout_ms if opts.timeout_ms is not None else self._defaults.timeout_ms

        async def attempt() -> Any:
            return await race_with_timeout(maybe_await(inv.execute(ctx)), timeout_ms)

        if opts.retry is None:
            return await attempt()
        return await retry_async(
            attempt,
            opts.retry,
            logger=self._adapters.logger,
            request_id=inv.request_id,
        )

    # ------------------------------------------------------------------ #
    # Run
    # ------------------------------------------------------------------ #

    async def run(self, inv: Invocation) -> Any:
        """
        Run one invocation and return the converter's output.

        Raises:
            ConfigurationError: on wiring mistakes; everything else is
            translated by `inv.converter`.
        """
        opts = inv.options
        method, path = inv.method, inv.path
        user: Any = ANONYMOUS
        audited = False
        base = {"request_id": inv.request_id, "method": method, "path": path}

        await self._log("info", f"{method} {path}", base)

        try:
            # Authentication
            if opts.auth is not None:
                user = await self._authenticate(inv)
                await self._check_roles(user, opts.auth)

            # Tenant scoping
            if opts.tenant_scoped:
                await self._check_tenant(inv, user)

            # Rate limiting; rejections are converted after the try block
            rejected = await self._rate_limit(inv, user)
            if rejected is None:
                # Input
                raw = await maybe_await(inv.get_raw_input())
                if not isinstance(raw, RawInput):
                    raw = RawInput(**dict(raw or {}))
                validated = await validate_inputs(opts.validation, raw)

                ctx = inv.build_context(user, validated)

                result = await self._execute(inv, ctx)

                # Completion; the log line waits for a successful conversion
                duration_ms = self._elapsed_ms(inv)
                await self._audit(inv, user, duration_ms, 200, True)
                audited = True

                meta = self._meta(inv, user)
                output = await maybe_await(inv.converter.on_success(Success(result), meta))
                if inv.on_complete is not None:
                    await maybe_await(inv.on_complete(output, meta))

                await self._log(
                    "info",
                    f"{method} {path} completed",
                    {**base, "status": 200, "duration_ms": round(duration_ms, 3)},
                )
                self._record(method, inv.started_at, ok=True)
                return output

        except ConfigurationError as exc:
            duration_ms = self._elapsed_ms(inv)
            await self._log(
                "error",
                f"{method} {path} misconfigured: {exc}",
                {**base, "status": 500, "code": _CONFIGURATION_ERROR_CODE},
                exc,
            )
            if not audited:
                await self._audit(inv, user, duration_ms, 500, False, _CONFIGURATION_ERROR_CODE)
            self._record(method, inv.started_at, ok=False, code=_CONFIGURATION_ERROR_CODE)
            raise

        except Exception as exc:
            return await self._on_failure(inv, user, exc, audited, base)

        return await self._on_rate_limited(inv, user, rejected, base)

    async def _on_rate_limited(
        self,
        inv: Invocation,
        user: Any,
        decision: RateLimitDecision,
        base: Mapping[str, Any],
    ) -> Any:
        duration_ms = self._elapsed_ms(inv)
        await self._log(
            "warning",
            f"{inv.method} {inv.path} rate limited",
            {
                **base,
                "status": TooManyRequests.default_status,
                "limit": decision.limit,
                "reset_at": decision.reset_at,
            },
        )
        await self._audit(
            inv, user, duration_ms,
            TooManyRequests.default_status, False, TooManyRequests.default_code,
        )
        self._count("rate_limited")
        self._record(inv.method, inv.started_at, ok=False, code=TooManyRequests.default_code)
        try:
            return await maybe_await(inv.converter.on_rate_limited(decision, self._meta(inv, user)))
        except (ApiError, ConfigurationError):
            # Raised on purpose (raise_errors actions)
            raise
        except Exception as exc:
            return await self._on_failure(inv, user, exc, True, base)

    async def _on_failure(
        self,
        inv: Invocation,
        user: Any,
        exc: Exception,
        audited: bool,
        base: Mapping[str, Any],
    ) -> Any:
        duration_ms = self._elapsed_ms(inv)
        failure = Failure.from_exception(exc)
        meta = {
            **base,
            "status": failure.status,
            "code": failure.code,
            "duration_ms": round(duration_ms, 3),
        }
        line = f"{inv.method} {inv.path} {failure.status}"

        if not failure.structured:
            attach_context(exc, request_id=inv.request_id, method=inv.method, path=inv.path)
            await self._log(
                "error",
                f"Unhandled error in {inv.method} {inv.path}: {type(exc).__name__}: {exc}",
                {**meta, "error": str(exc), "error_type": type(exc).__name__},
                exc,
            )
        elif failure.status >= 500:
            await self._log("error", line, meta, exc)
        else:
            await self._log("warning", line, meta)

        if not audited:
            await self._audit(inv, user, duration_ms, failure.status, False, failure.code)
        self._record(inv.method, inv.started_at, ok=False, code=failure.code)

        return await maybe_await(inv.converter.on_error(failure, self._meta(inv, user)))


__all__ = [
    "PIPELINE_TIMEOUT_ENV",
    "PipelineAdapters",
    "PipelineDefaults",
    "PipelineOptions",
    "RunMeta",
    "ResultConverter",
    "Invocation",
    "Pipeline",
]
