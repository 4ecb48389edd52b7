# pipeline_sdk/wrapper/api.py
# SPDX-License-Identifier: Apache-2.0

"""
HTTP-shaped wrapper for Starlette endpoints.

    api = create_api_wrapper(config)

    @api(auth=[], validation=ValidationConfig(body=CreateItem))
    async def create_item(ctx: ApiContext):
        return {"id": save(ctx.body)}

    app = Starlette(routes=[Route("/items", create_item, methods=["POST"])])

The wrapped endpoint takes a Starlette `Request` and returns a `Response`.
Handler return values that are not a `Response` become a 200 success
envelope. Every response carries `X-Request-ID` (taken from the incoming
header when present).

GET requests with `cache=CacheConfig(...)` are looked up before the
pipeline runs. A hit is returned as stored, so auth, rate limiting and the
handler are all skipped.
"""

from __future__ import annotations

import functools
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence

from starlette.requests import Request
from starlette.responses import Response

from pipeline_sdk.core.async_bridge import maybe_await
from pipeline_sdk.core.context import ApiContext, principal_id
from pipeline_sdk.core.errors import TooManyRequests
from pipeline_sdk.core.outcome import Failure, Success
from pipeline_sdk.policies.cache import (
    CACHE_HEADER,
    REQUEST_ID_HEADER,
    CacheConfig,
    envelope_to_response,
    get_cache_key,
    get_cached,
    response_to_envelope,
    set_cached,
    should_cache_response,
)
from pipeline_sdk.policies.rate_limit import RateLimitDecision
from pipeline_sdk.policies.validation import RawInput
from pipeline_sdk.response.api import create_error_response, json_response
from pipeline_sdk.response.transformers import ResponseTransformers, resolve_transformers
from pipeline_sdk.wrapper.config import Middleware, WrapperConfig, WrapperOptions
from pipeline_sdk.wrapper.parsers import (
    build_auth_context,
    get_client_ip,
    get_user_agent,
    parse_body,
    parse_query,
)
from pipeline_sdk.wrapper.pipeline import Invocation, Pipeline, RunMeta

Endpoint = Callable[[Request], Awaitable[Response]]


# =============================================================================
# Result conversion
# =============================================================================

class ApiResultConverter:
    """Outcome -> Starlette response, always stamped with X-Request-ID."""

    def __init__(self, transformers: ResponseTransformers) -> None:
        self._transformers = transformers

    def on_success(self, outcome: Success[Response], meta: RunMeta) -> Response:
        response = outcome.value
        response.headers[REQUEST_ID_HEADER] = meta.request_id
        return response

    def on_error(self, failure: Failure, meta: RunMeta) -> Response:
        return create_error_response(
            failure,
            self._transformers,
            headers={REQUEST_ID_HEADER: meta.request_id},
        )

    def on_rate_limited(self, decision: RateLimitDecision, meta: RunMeta) -> Response:
        headers = {REQUEST_ID_HEADER: meta.request_id, **decision.headers()}
        return create_error_response(TooManyRequests(), self._transformers, headers=headers)


def _run_middleware(
    middleware: Sequence[Middleware],
    ctx: ApiContext,
    final: Callable[[], Awaitable[Response]],
) -> Awaitable[Response]:
    async def dispatch(index: int) -> Response:
        if index < len(middleware):
            return await maybe_await(middleware[index](ctx, lambda: dispatch(index + 1)))
        return await final()

    return dispatch(0)


# =============================================================================
# Wrapper
# =============================================================================

class ApiWrapper:
    """
    Decorator factory bound to one WrapperConfig.

    Usable as `api(handler)`, `api(handler, options)`, `@api(**options)`
    or `@api(options)`.
    """

    def __init__(self, config: Optional[WrapperConfig] = None) -> None:
        self._config = config or WrapperConfig()
        self._pipeline = Pipeline(self._config.adapters, self._config.defaults)

    @property
    def config(self) -> WrapperConfig:
        return self._config

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
        if options.cache is not None and not isinstance(options.cache, CacheConfig):
            raise TypeError("HTTP handlers take cache=CacheConfig(...)")

        if handler is None:
            return functools.partial(self.wrap, options=options)
        return self.wrap(handler, options)

    def wrap(self, handler: Callable[[ApiContext], Any], options: WrapperOptions) -> Endpoint:
        config = self._config
        adapters = config.adapters
        pipeline = self._pipeline
        transformers = resolve_transformers(options.transformers, config.transformers)
        converter = ApiResultConverter(transformers)
        pipeline_options = options.pipeline_options()
        cache_config: Optional[CacheConfig] = options.cache
        middleware = options.middleware

        @functools.wraps(handler)
        async def endpoint(request: Request) -> Response:
            request_id = request.headers.get("x-request-id") or config.request_id_factory()
            method = request.method.upper()
            path = request.url.path

            cache_key: Optional[str] = None
            if cache_config is not None and adapters.cache is not None and method == "GET":
                cache_key = get_cache_key(request, cache_config)
                hit = await get_cached(
                    adapters.cache, cache_key, logger=adapters.logger, request_id=request_id
                )
                if isinstance(hit, Mapping):
                    return envelope_to_response(hit, request_id)

            async def get_raw_input() -> RawInput:
                return RawInput(
                    params=dict(request.path_params),
                    query=parse_query(request),
                    body=await parse_body(request),
                )

            def build_context(user: Any, validated: Mapping[str, Any]) -> ApiContext:
                return ApiContext(
                    request_id=request_id,
                    method=method,
                    path=path,
                    user=user,
                    started_at=inv.started_at,
                    params=validated["params"],
                    query=validated["query"],
                    body=validated["body"],
                    request=request,
                    ip=get_client_ip(request),
                    user_agent=get_user_agent(request),
                )

            async def execute(ctx: ApiContext) -> Response:
                async def run_handler() -> Response:
                    result = await maybe_await(handler(ctx))
                    if isinstance(result, Response):
                        return result
                    return json_response(transformers.success(result, 200), 200)

                if middleware:
                    return await _run_middleware(middleware, ctx, run_handler)
                return await run_handler()

            async def save_to_cache(response: Response, meta: RunMeta) -> None:
                if should_cache_response(response.status_code, cache_config.success_only):
                    envelope = response_to_envelope(response)
                    if envelope is not None:
                        await set_cached(
                            adapters.cache,
                            cache_key,
                            envelope,
                            cache_config.ttl_ms,
                            logger=adapters.logger,
                            request_id=request_id,
                        )
                response.headers[CACHE_HEADER] = "MISS"

            inv = Invocation(
                request_id=request_id,
                method=method,
                path=path,
                get_auth_context=lambda: build_auth_context(request),
                get_identifier=lambda user: principal_id(user) or f"ip:{get_client_ip(request)}",
                get_raw_input=get_raw_input,
                build_context=build_context,
                execute=execute,
                converter=converter,
                options=pipeline_options,
                on_complete=save_to_cache if cache_key is not None else None,
                ip=get_client_ip(request),
                user_agent=get_user_agent(request),
            )
            return await pipeline.run(inv)

        return endpoint


def create_api_wrapper(config: Optional[WrapperConfig] = None) -> ApiWrapper:
    """Create an HTTP wrapper bound to `config`."""
    return ApiWrapper(config)


__all__ = ["ApiResultConverter", "ApiWrapper", "create_api_wrapper"]
