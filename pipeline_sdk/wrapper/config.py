# pipeline_sdk/wrapper/config.py
# SPDX-License-Identifier: Apache-2.0

"""
Wrapper configuration.

`WrapperConfig` is fixed when a wrapper is created (adapters, defaults,
wrapper-level transformers). `WrapperOptions` is given per wrapped handler.

    config = WrapperConfig(
        adapters=PipelineAdapters(auth=MyAuth(), cache=InMemoryCache(), logger=StdlibLogger()),
        defaults=PipelineDefaults.from_env(),
    )
    api = create_api_wrapper(config)

    @api(auth=["admin"], rate_limit=RateLimitPolicy(max=10))
    async def delete_item(ctx):
        ...
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from pipeline_sdk.core.context import generate_request_id
from pipeline_sdk.policies.cache import ActionCacheConfig, CacheConfig
from pipeline_sdk.policies.rate_limit import RateLimitPolicy
from pipeline_sdk.policies.retry import RetryPolicy
from pipeline_sdk.policies.validation import ValidationConfig
from pipeline_sdk.response.transformers import ResponseTransformers
from pipeline_sdk.wrapper.pipeline import PipelineAdapters, PipelineDefaults, PipelineOptions

Middleware = Callable[[Any, Callable[[], Any]], Any]


@dataclass(frozen=True)
class WrapperConfig:
    """
    Attributes:
        adapters:
            Auth / cache / logger / metrics collaborators.
        defaults:
            Default timeout and per-method rate limits.
        transformers:
            Wrapper-level envelope transformers (call-level options win).
        request_id_factory:
            Produces ids when the caller does not supply one.
    """
    adapters: PipelineAdapters = field(default_factory=PipelineAdapters)
    defaults: PipelineDefaults = field(default_factory=PipelineDefaults)
    transformers: Optional[ResponseTransformers] = None
    request_id_factory: Callable[[], str] = generate_request_id


@dataclass(frozen=True)
class WrapperOptions:
    """
    Per-handler options.

    Pipeline policy (see PipelineOptions): auth, tenant_scoped, rate_limit,
    timeout_ms, retry, audit, validation.

    Wrapper extras:
        transformers:  call-level envelope transformers
        cache:         CacheConfig (HTTP GET) or ActionCacheConfig (actions)
        middleware:    HTTP only; `mw(ctx, call_next)` run in order around the handler
        raise_errors:  actions only; raise ApiError instead of returning error envelopes
    """
    auth: Optional[Sequence[str]] = None
    tenant_scoped: bool = False
    rate_limit: Union[RateLimitPolicy, bool, None] = None
    timeout_ms: Optional[int] = None
    retry: Optional[RetryPolicy] = None
    audit: bool = True
    validation: Optional[ValidationConfig] = None
    transformers: Optional[ResponseTransformers] = None
    cache: Union[CacheConfig, ActionCacheConfig, None] = None
    middleware: Sequence[Middleware] = ()
    raise_errors: bool = False

    def __post_init__(self):
        object.__setattr__(self, "middleware", tuple(self.middleware or ()))
        if isinstance(self.validation, Mapping):
            object.__setattr__(self, "validation", ValidationConfig(**self.validation))

    def pipeline_options(self) -> PipelineOptions:
        return PipelineOptions(
            auth=self.auth,
            tenant_scoped=self.tenant_scoped,
            rate_limit=self.rate_limit,
            timeout_ms=self.timeout_ms,
            retry=self.retry,
            audit=self.audit,
            validation=self.validation,
        )


__all__ = ["Middleware", "WrapperConfig", "WrapperOptions"]
