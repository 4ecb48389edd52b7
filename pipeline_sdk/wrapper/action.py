# pipeline_sdk/wrapper/action.py
# SPDX-License-Identifier: Apache-2.0

"""
Direct-invocation ("action") wrapper.

    action = create_action_wrapper(config, get_auth_context=current_auth_context)

    @action(auth=[], validation=ValidationConfig(body=RenameInput))
    async def rename_item(ctx: ActionContext):
        return store.rename(ctx.input.id, ctx.input.name)

    result = await rename_item({"id": "1", "name": "new"})
    # {"success": True, "data": ...} or {"success": False, "error": {...}}

Actions run through the same orchestrator as HTTP handlers with method
"ACTION" and the handler name as path. The input is validated as the
`body` slot. With `raise_errors=True` failures raise the ApiError (or a
sanitized InternalError) instead of returning an error envelope.

`call_sync(input)` runs the action from synchronous code.
"""

from __future__ import annotations

import functools
from typing import Any, Callable, Dict, Mapping, Optional

from pipeline_sdk.adapters.logger import safe_log
from pipeline_sdk.core.async_bridge import AsyncBridge, maybe_await
from pipeline_sdk.core.context import ActionContext, principal_id
from pipeline_sdk.core.errors import ConfigurationError, TooManyRequests
from pipeline_sdk.core.outcome import Failure, Success
from pipeline_sdk.policies.cache import ActionCacheConfig, build_action_cache_key, get_cached, set_cached
from pipeline_sdk.policies.rate_limit import RateLimitDecision
from pipeline_sdk.policies.validation import RawInput
from pipeline_sdk.response.action import action_error, action_success, is_envelope
from pipeline_sdk.response.transformers import ResponseTransformers, resolve_transformers
from pipeline_sdk.wrapper.config import WrapperConfig, WrapperOptions
from pipeline_sdk.wrapper.pipeline import Invocation, Pipeline, RunMeta

ACTION_METHOD = "ACTION"

AuthContextProvider = Callable[[], Any]


# =============================================================================
# Result conversion
# =============================================================================

class ActionResultConverter:
    """
    Outcome -> action envelope.

    With `raise_errors`, failures are raised instead: the original ApiError
    for structured failures, a fresh InternalError otherwise.
    """

    def __init__(self, transformers: ResponseTransformers, *, raise_errors: bool = False) -> None:
        self._transformers = transformers
        self._raise_errors = raise_errors

    def on_success(self, outcome: Success[Any], meta: RunMeta) -> Dict[str, Any]:
        result = outcome.value
        if is_envelope(result) and result["success"]:
            return dict(result)
        return action_success(result, 200, self._transformers)

    def on_error(self, failure: Failure, meta: RunMeta) -> Dict[str, Any]:
        if self._raise_errors:
            raise failure.to_error()
        return action_error(
            failure.message,
            failure.code,
            failure.status,
            failure.details,
            self._transformers,
        )

    def on_rate_limited(self, decision: RateLimitDecision, meta: RunMeta) -> Dict[str, Any]:
        err = TooManyRequests()
        if self._raise_errors:
            raise err
        return action_error(err.message, err.code, err.status, None, self._transformers)


# =============================================================================
# Wrapped action
# =============================================================================

class WrappedAction:
    """
    Awaitable callable produced by ActionWrapper.

    `await action(input)` returns an envelope (or raises with raise_errors).
    """

    def __init__(
        self,
        handler: Callable[[ActionContext], Any],
        options: WrapperOptions,
        wrapper: "ActionWrapper",
    ) -> None:
        self._handler = handler
        self._options = options
        self._wrapper = wrapper
        self._pipeline_options = options.pipeline_options()
        self._transformers = resolve_transformers(options.transformers, wrapper.config.transformers)
        self._converter = ActionResultConverter(self._transformers, raise_errors=options.raise_errors)
        self.name = getattr(handler, "__name__", None) or "anonymous"
        functools.update_wrapper(self, handler)

    @property
    def options(self) -> WrapperOptions:
        return self._options

    async def __call__(self, value: Any = None) -> Any:
        config = self._wrapper.config
        adapters = config.adapters
        request_id = config.request_id_factory()
        cache_config = self._options.cache

        if isinstance(cache_config, ActionCacheConfig) and adapters.cache is not None:
            key = build_action_cache_key(self.name, value, cache_config)
            hit = await get_cached(adapters.cache, key, logger=adapters.logger, request_id=request_id)
            if hit is not None:
                await safe_log(
                    adapters.logger, "debug", "Action cache hit",
                    {"request_id": request_id, "cache_key": key},
                )
                return hit

            result = await self._run(value, request_id)
            if is_envelope(result) and result["success"]:
                await set_cached(
                    adapters.cache, key, result, cache_config.ttl_ms,
                    logger=adapters.logger, request_id=request_id,
                )
            return result

        return await self._run(value, request_id)

    def call_sync(self, value: Any = None) -> Any:
        """Run the action to completion from synchronous code."""
        return AsyncBridge.run_sync(self(value))

    async def _run(self, value: Any, request_id: str) -> Any:
        get_auth_context = self._wrapper.get_auth_context
        handler = self._handler
        name = self.name

        def auth_context() -> Any:
            if get_auth_context is None:
                raise ConfigurationError(
                    "get_auth_context must be provided to use auth or tenant scoping in actions"
                )
            return get_auth_context()

        def build_context(user: Any, validated: Mapping[str, Any]) -> ActionContext:
            return ActionContext(
                request_id=request_id,
                method=ACTION_METHOD,
                path=name,
                user=user,
                started_at=inv.started_at,
                body=validated["body"],
            )

        async def execute(ctx: ActionContext) -> Any:
            return await maybe_await(handler(ctx))

        inv = Invocation(
            request_id=request_id,
            method=ACTION_METHOD,
            path=name,
            get_auth_context=auth_context,
            get_identifier=lambda user: principal_id(user) or "anonymous",
            get_raw_input=lambda: RawInput(body=value),
            build_context=build_context,
            execute=execute,
            converter=self._converter,
            options=self._pipeline_options,
        )
        return await self._wrapper.pipeline.run(inv)


class ActionWrapper:
    """
    Decorator factory for actions bound to one WrapperConfig.

    Args:
        config:
            Adapters, defaults and wrapper-level transformers.
        get_auth_context:
            () -> AuthContext (sync or async). Required by actions that use
            `auth` or `tenant_scoped`.
    """

    def __init__(
        self,
        config: Optional[WrapperConfig] = None,
        get_auth_context: Optional[AuthContextProvider] = None,
    ) -> None:
        self.config = config or WrapperConfig()
        self.get_auth_context = get_auth_context
        self.pipeline = Pipeline(self.config.adapters, self.config.defaults)

    def __call__(
        self,
        handler: Any = None,
        options: Optional[WrapperOptions] = None,
        **kwargs: Any,
    ) -> Any:
        if isinstance(handler, WrapperOptions):
            handler, options = None, handler
        if options is None:
            options = WrapperOptions(**kwargs)
        elif kwargs:
            raise TypeError("pass either a WrapperOptions instance or keyword options, not both")
        if options.cache is not None and not isinstance(options.cache, ActionCacheConfig):
            raise TypeError("actions take cache=ActionCacheConfig(...)")
        if options.middleware:
            raise TypeError("middleware is only supported on HTTP handlers")

        if handler is None:
            return functools.partial(self.wrap, options=options)
        return self.wrap(handler, options)

    def wrap(self, handler: Callable[[ActionContext], Any], options: WrapperOptions) -> WrappedAction:
        return WrappedAction(handler, options, self)


def create_action_wrapper(
    config: Optional[WrapperConfig] = None,
    get_auth_context: Optional[AuthContextProvider] = None,
) -> ActionWrapper:
    """Create an action wrapper bound to `config`."""
    return ActionWrapper(config, get_auth_context)


__all__ = [
    "ACTION_METHOD",
    "ActionResultConverter",
    "ActionWrapper",
    "WrappedAction",
    "create_action_wrapper",
]
