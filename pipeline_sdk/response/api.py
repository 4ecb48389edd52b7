# pipeline_sdk/response/api.py
# SPDX-License-Identifier: Apache-2.0

"""
HTTP response helpers.

`ApiResponses` builds Starlette responses in the envelope shape and error
instances for handlers to raise:

    async def create_item(ctx):
        if exists(ctx.body.name):
            raise ApiResponse.conflict()
        return ApiResponse.created(store(ctx.body))

`ApiResponse` is a default instance using the built-in transformers. Bind
your own pair with `ApiResponses(transformers=...)`; instances are
immutable, so sharing one across requests is safe.

Responses a handler returns directly are sent as-is (only `X-Request-ID` is
added), so wrapper-level transformers do not apply to them.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Union

from starlette.responses import JSONResponse, Response

from pipeline_sdk.core.errors import (
    INTERNAL_ERROR_MESSAGE,
    ApiError,
    BadGateway,
    BadRequest,
    Conflict,
    Forbidden,
    GatewayTimeout,
    InternalError,
    NotFound,
    ServiceUnavailable,
    TooManyRequests,
    Unauthorized,
    ValidationErrorDetail,
    ValidationFailed,
    error_for_status,
)
from pipeline_sdk.core.outcome import Failure
from pipeline_sdk.response.transformers import ResponseTransformers, resolve_transformers, to_jsonable


def json_response(
    body: Any,
    status: int = 200,
    headers: Optional[Mapping[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(to_jsonable(body), status_code=status, headers=dict(headers or {}))


def create_error_response(
    error: Union[ApiError, Failure],
    transformers: Optional[ResponseTransformers] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> JSONResponse:
    """Render an ApiError or canonical Failure with the error transformer."""
    t = resolve_transformers(transformers)
    if isinstance(error, Failure):
        message, code, status, errors = error.message, error.code, error.status, error.details
    else:
        message, code, status, errors = error.message, error.code, error.status, error.errors
    body = t.error(message, code, status, list(errors) or None)
    return json_response(body, status, headers)


class ApiResponses:
    def __init__(self, transformers: Optional[ResponseTransformers] = None) -> None:
        self._transformers = transformers

    # ------------------------------------------------------------------ #
    # Success
    # ------------------------------------------------------------------ #

    def success(
        self,
        data: Any,
        status: int = 200,
        transformers: Optional[ResponseTransformers] = None,
    ) -> JSONResponse:
        return self.response(data, status=status, transformers=transformers)

    def created(self, data: Any, transformers: Optional[ResponseTransformers] = None) -> JSONResponse:
        return self.response(data, status=201, transformers=transformers)

    def no_content(self) -> Response:
        return Response(status_code=204)

    def response(
        self,
        data: Any,
        *,
        status: int = 200,
        headers: Optional[Mapping[str, str]] = None,
        transformers: Optional[ResponseTransformers] = None,
    ) -> JSONResponse:
        """Success envelope with full control over status and headers."""
        t = resolve_transformers(transformers, self._transformers)
        return json_response(t.success(data, status), status, headers)

    # ------------------------------------------------------------------ #
    # Errors (returned, for the caller to raise)
    # ------------------------------------------------------------------ #

    def error(
        self,
        message: str,
        status: int = 400,
        code: Optional[str] = None,
        errors: Optional[List[ValidationErrorDetail]] = None,
    ) -> ApiError:
        """Most specific error kind for `status`; `code` defaults to that kind's code."""
        return error_for_status(message, status=status, code=code, errors=errors)

    def bad_request(self, message: str = "Bad request") -> ApiError:
        return BadRequest(message)

    def unauthorized(self, message: str = "Authentication required") -> ApiError:
        return Unauthorized(message)

    def forbidden(self, message: str = "Access denied") -> ApiError:
        return Forbidden(message)

    def not_found(self, message: str = "Resource not found") -> ApiError:
        return NotFound(message)

    def conflict(self, message: str = "Resource already exists") -> ApiError:
        return Conflict(message)

    def validation_error(
        self,
        message: str = "Validation failed",
        errors: Optional[List[ValidationErrorDetail]] = None,
    ) -> ApiError:
        return ValidationFailed(message, errors=errors)

    def too_many_requests(self, message: str = "Rate limit exceeded") -> ApiError:
        return TooManyRequests(message)

    def internal_error(self, message: str = INTERNAL_ERROR_MESSAGE) -> ApiError:
        return InternalError(message)

    def bad_gateway(self, message: str = "Bad gateway") -> ApiError:
        return BadGateway(message)

    def service_unavailable(self, message: str = "Service temporarily unavailable") -> ApiError:
        return ServiceUnavailable(message)

    def gateway_timeout(self, message: str = "Gateway timeout") -> ApiError:
        return GatewayTimeout(message)

    def error_response(
        self,
        error: Union[ApiError, Failure],
        transformers: Optional[ResponseTransformers] = None,
    ) -> JSONResponse:
        return create_error_response(error, resolve_transformers(transformers, self._transformers))


ApiResponse = ApiResponses()


__all__ = ["ApiResponses", "ApiResponse", "json_response", "create_error_response"]
