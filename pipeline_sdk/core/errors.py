# pipeline_sdk/core/errors.py
# SPDX-License-Identifier: Apache-2.0
"""
Normalized error taxonomy for the request pipeline.

Every structured failure raised by handlers, validators, auth checks or the
pipeline policies is an `ApiError` subclass. Each one carries:

- message:  human-readable text that is safe to return to callers
- status:   HTTP-like status code (also used by the action envelope)
- code:     UPPER_SNAKE_CASE machine code
- errors:   optional field-level details [{"field": ..., "message": ...}]

Wire shape (see `ApiError.to_dict`):

    {
        "success": false,
        "message": "<human readable>",
        "code": "<UPPER_SNAKE_CASE>",
        "errors": [{"field": "...", "message": "..."}]   # only when present
    }

Anything that is not an `ApiError` is treated as unexpected by the
orchestrator: it is logged in full server-side and surfaced to callers as
`InternalError` with a generic message.

`ConfigurationError` is deliberately *outside* the taxonomy. It signals a
wiring mistake (e.g. auth required but no auth adapter) and is re-raised by
the orchestrator instead of being translated into a response.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

ValidationErrorDetail = Dict[str, str]

INTERNAL_ERROR_MESSAGE = "Internal server error"


class ApiError(Exception):
    """
    Base exception for all structured pipeline errors.

    Attributes:
        message:
            Human-readable description (safe for logs and clients).
        status:
            HTTP-like status code.
        code:
            Upper-snake-case machine code.
        errors:
            Optional list of {"field", "message"} mappings; empty list when absent.
    """

    default_status = 400
    default_code = "BAD_REQUEST"

    def __init__(
        self,
        message: str = "",
        status: Optional[int] = None,
        code: Optional[str] = None,
        errors: Optional[Sequence[Mapping[str, Any]]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = int(status if status is not None else self.default_status)
        self.code = code or self.default_code
        self.errors: List[ValidationErrorDetail] = [
            {"field": str(e.get("field", "")), "message": str(e.get("message", ""))}
            for e in (errors or ())
        ]

    def __str__(self) -> str:
        base = self.message or self.__class__.__name__
        base += f" [status={self.status} code={self.code}]"
        if self.errors:
            base += f" errors={self.errors}"
        return base

    def to_dict(self) -> Dict[str, Any]:
        """Canonical error envelope for this error."""
        body: Dict[str, Any] = {
            "success": False,
            "message": self.message,
            "code": self.code,
        }
        if self.errors:
            body["errors"] = list(self.errors)
        return body

    @staticmethod
    def is_api_error(err: BaseException) -> bool:
        return isinstance(err, ApiError)


class BadRequest(ApiError):
    """Malformed input that is not a field-level validation failure (e.g. invalid JSON)."""

    default_status = 400
    default_code = "BAD_REQUEST"

    def __init__(self, message: str = "Bad request", **kwargs: Any):
        kwargs.setdefault("status", 400)
        kwargs.setdefault("code", "BAD_REQUEST")
        super().__init__(message, **kwargs)


class Unauthorized(ApiError):
    """No principal could be verified for a request that requires one."""

    default_status = 401
    default_code = "UNAUTHORIZED"

    def __init__(self, message: str = "Authentication required", **kwargs: Any):
        kwargs.setdefault("status", 401)
        kwargs.setdefault("code", "UNAUTHORIZED")
        super().__init__(message, **kwargs)


class Forbidden(ApiError):
    """The principal is known but lacks a required role or tenant context."""

    default_status = 403
    default_code = "FORBIDDEN"

    def __init__(self, message: str = "Access denied", **kwargs: Any):
        kwargs.setdefault("status", 403)
        kwargs.setdefault("code", "FORBIDDEN")
        super().__init__(message, **kwargs)


class NotFound(ApiError):
    default_status = 404
    default_code = "NOT_FOUND"

    def __init__(self, message: str = "Resource not found", **kwargs: Any):
        kwargs.setdefault("status", 404)
        kwargs.setdefault("code", "NOT_FOUND")
        super().__init__(message, **kwargs)


class Conflict(ApiError):
    default_status = 409
    default_code = "CONFLICT"

    def __init__(self, message: str = "Resource already exists", **kwargs: Any):
        kwargs.setdefault("status", 409)
        kwargs.setdefault("code", "CONFLICT")
        super().__init__(message, **kwargs)


class ValidationFailed(ApiError):
    """
    One or more input fields failed schema validation.

    `errors` lists every failing field, not just the first one.
    """

    default_status = 422
    default_code = "VALIDATION_ERROR"

    def __init__(self, message: str = "Validation failed", **kwargs: Any):
        kwargs.setdefault("status", 422)
        kwargs.setdefault("code", "VALIDATION_ERROR")
        super().__init__(message, **kwargs)


class TooManyRequests(ApiError):
    default_status = 429
    default_code = "TOO_MANY_REQUESTS"

    def __init__(self, message: str = "Rate limit exceeded", **kwargs: Any):
        kwargs.setdefault("status", 429)
        kwargs.setdefault("code", "TOO_MANY_REQUESTS")
        super().__init__(message, **kwargs)


class InternalError(ApiError):
    default_status = 500
    default_code = "INTERNAL_ERROR"

    def __init__(self, message: str = INTERNAL_ERROR_MESSAGE, **kwargs: Any):
        kwargs.setdefault("status", 500)
        kwargs.setdefault("code", "INTERNAL_ERROR")
        super().__init__(message, **kwargs)


class BadGateway(ApiError):
    default_status = 502
    default_code = "BAD_GATEWAY"

    def __init__(self, message: str = "Bad gateway", **kwargs: Any):
        kwargs.setdefault("status", 502)
        kwargs.setdefault("code", "BAD_GATEWAY")
        super().__init__(message, **kwargs)


class ServiceUnavailable(ApiError):
    default_status = 503
    default_code = "SERVICE_UNAVAILABLE"

    def __init__(self, message: str = "Service temporarily unavailable", **kwargs: Any):
        kwargs.setdefault("status", 503)
        kwargs.setdefault("code", "SERVICE_UNAVAILABLE")
        super().__init__(message, **kwargs)


class GatewayTimeout(ApiError):
    default_status = 504
    default_code = "GATEWAY_TIMEOUT"

    def __init__(self, message: str = "Gateway timeout", **kwargs: Any):
        kwargs.setdefault("status", 504)
        kwargs.setdefault("code", "GATEWAY_TIMEOUT")
        super().__init__(message, **kwargs)


class RequestTimeout(ApiError):
    """
    The handler did not settle within its timeout budget.

    Raised by the timeout guard. The handler itself may still be running.
    """

    default_status = 408
    default_code = "TIMEOUT"

    def __init__(self, message: str = "Request timeout", **kwargs: Any):
        kwargs.setdefault("status", 408)
        kwargs.setdefault("code", "TIMEOUT")
        super().__init__(message, **kwargs)


class ConfigurationError(RuntimeError):
    """
    The pipeline was wired incorrectly (missing adapter or capability).

    Never retried and never translated into a response envelope.
    """


def error_for_status(
    message: str,
    status: int = 400,
    code: Optional[str] = None,
    errors: Optional[Sequence[Mapping[str, Any]]] = None,
) -> ApiError:
    """
    Build the most specific ApiError for `status`.

    Unknown statuses produce a plain ApiError with the given status/code.
    """
    cls = _BY_STATUS.get(int(status))
    if cls is None:
        return ApiError(message, status=status, code=code or "BAD_REQUEST", errors=errors)
    kwargs: Dict[str, Any] = {"errors": errors}
    if code:
        kwargs["code"] = code
    return cls(message, **kwargs)


_BY_STATUS = {
    400: BadRequest,
    401: Unauthorized,
    403: Forbidden,
    404: NotFound,
    408: RequestTimeout,
    409: Conflict,
    422: ValidationFailed,
    429: TooManyRequests,
    500: InternalError,
    502: BadGateway,
    503: ServiceUnavailable,
    504: GatewayTimeout,
}


__all__ = [
    "INTERNAL_ERROR_MESSAGE",
    "ValidationErrorDetail",
    "ApiError",
    "BadRequest",
    "Unauthorized",
    "Forbidden",
    "NotFound",
    "Conflict",
    "ValidationFailed",
    "TooManyRequests",
    "InternalError",
    "BadGateway",
    "ServiceUnavailable",
    "GatewayTimeout",
    "RequestTimeout",
    "ConfigurationError",
    "error_for_status",
]
