# pipeline_sdk/response/action.py
# SPDX-License-Identifier: Apache-2.0

"""
Envelopes for direct (non-HTTP) invocations.

    {"success": True, "data": <value>}
    {"success": False, "error": {"message", "code", "status", "errors"?}}

Transformer output that is a mapping is merged in as extra fields: into the
top level for success, into `error` for failures. The `success` tag itself
is never overridden.

`ActionResponse` is the handler-facing helper: `success`/`created` return
envelopes, the error methods raise the matching ApiError.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, NoReturn, Optional

from pipeline_sdk.core.errors import INTERNAL_ERROR_MESSAGE, ValidationErrorDetail
from pipeline_sdk.response.api import ApiResponse
from pipeline_sdk.response.transformers import ResponseTransformers, resolve_transformers


def _extras(transformed: Any) -> Dict[str, Any]:
    if isinstance(transformed, Mapping):
        return {k: v for k, v in transformed.items() if k != "success"}
    return {}


def action_success(
    data: Any,
    status: int = 200,
    transformers: Optional[ResponseTransformers] = None,
) -> Dict[str, Any]:
    t = resolve_transformers(transformers)
    envelope: Dict[str, Any] = {"success": True, "data": data}
    envelope.update(_extras(t.success(data, status)))
    return envelope


def action_error(
    message: str,
    code: str,
    status: int,
    errors: Optional[List[ValidationErrorDetail]] = None,
    transformers: Optional[ResponseTransformers] = None,
) -> Dict[str, Any]:
    t = resolve_transformers(transformers)
    error: Dict[str, Any] = {"message": message, "code": code, "status": status}
    if errors:
        error["errors"] = list(errors)
    error.update(_extras(t.error(message, code, status, list(errors or []) or None)))
    return {"success": False, "error": error}


def is_envelope(value: Any) -> bool:
    """True for values already shaped as an action envelope."""
    if not isinstance(value, Mapping) or not isinstance(value.get("success"), bool):
        return False
    return ("data" in value) if value["success"] else isinstance(value.get("error"), Mapping)


class ActionResponses:
    def __init__(self, transformers: Optional[ResponseTransformers] = None) -> None:
        self._transformers = transformers

    def success(self, data: Any) -> Dict[str, Any]:
        return action_success(data, 200, self._transformers)

    def created(self, data: Any) -> Dict[str, Any]:
        return action_success(data, 201, self._transformers)

    @staticmethod
    def is_success(result: Mapping[str, Any]) -> bool:
        return result.get("success") is True

    @staticmethod
    def is_error(result: Mapping[str, Any]) -> bool:
        return result.get("success") is False

    def error(
        self,
        message: str,
        status: int = 400,
        code: Optional[str] = None,
        errors: Optional[List[ValidationErrorDetail]] = None,
    ) -> NoReturn:
        raise ApiResponse.error(message, status, code, errors)

    def bad_request(self, message: str = "Bad request") -> NoReturn:
        raise ApiResponse.bad_request(message)

    def unauthorized(self, message: str = "Authentication required") -> NoReturn:
        raise ApiResponse.unauthorized(message)

    def forbidden(self, message: str = "Access denied") -> NoReturn:
        raise ApiResponse.forbidden(message)

    def not_found(self, message: str = "Resource not found") -> NoReturn:
        raise ApiResponse.not_found(message)

    def conflict(self, message: str = "Resource already exists") -> NoReturn:
        raise ApiResponse.conflict(message)

    def validation_error(
        self,
        message: str = "Validation failed",
        errors: Optional[List[ValidationErrorDetail]] = None,
    ) -> NoReturn:
        raise ApiResponse.validation_error(message, errors)

    def too_many_requests(self, message: str = "Rate limit exceeded") -> NoReturn:
        raise ApiResponse.too_many_requests(message)

    def internal_error(self, message: str = INTERNAL_ERROR_MESSAGE) -> NoReturn:
        raise ApiResponse.internal_error(message)

    def bad_gateway(self, message: str = "Bad gateway") -> NoReturn:
        raise ApiResponse.bad_gateway(message)

    def service_unavailable(self, message: str = "Service temporarily unavailable") -> NoReturn:
        raise ApiResponse.service_unavailable(message)

    def gateway_timeout(self, message: str = "Gateway timeout") -> NoReturn:
        raise ApiResponse.gateway_timeout(message)


ActionResponse = ActionResponses()


__all__ = [
    "ActionResponses",
    "ActionResponse",
    "action_success",
    "action_error",
    "is_envelope",
]
