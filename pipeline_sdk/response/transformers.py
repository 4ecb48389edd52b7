# pipeline_sdk/response/transformers.py
# SPDX-License-Identifier: Apache-2.0

"""
Envelope transformers.

A transformer pair decides the body shape of success and error responses:

    success(data, status) -> body
    error(message, code, status, errors) -> body

Defaults:

    {"success": true, "data": <data>}
    {"success": false, "message": "...", "code": "...", "errors": [...]}  # errors only when non-empty

Transformers are configuration, never process state. Resolution order for
each half of the pair: call-level -> wrapper-level -> built-in default.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional

from pydantic import BaseModel

from pipeline_sdk.core.errors import ValidationErrorDetail

SuccessTransformer = Callable[[Any, int], Any]
ErrorTransformer = Callable[[str, str, int, Optional[List[ValidationErrorDetail]]], Any]


def default_success(data: Any, status: int) -> Dict[str, Any]:
    return {"success": True, "data": data}


def default_error(
    message: str,
    code: str,
    status: int,
    errors: Optional[List[ValidationErrorDetail]] = None,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "message": message, "code": code}
    if errors:
        body["errors"] = list(errors)
    return body


@dataclass(frozen=True)
class ResponseTransformers:
    """Either half may be None to fall through to the next level."""
    success: Optional[SuccessTransformer] = None
    error: Optional[ErrorTransformer] = None


DEFAULT_TRANSFORMERS = ResponseTransformers(success=default_success, error=default_error)


def resolve_transformers(
    call: Optional[ResponseTransformers] = None,
    instance: Optional[ResponseTransformers] = None,
) -> ResponseTransformers:
    """Return a fully populated pair: call > instance > default, per half."""
    success = (call and call.success) or (instance and instance.success) or default_success
    error = (call and call.error) or (instance and instance.error) or default_error
    return ResponseTransformers(success=success, error=error)


def to_jsonable(value: Any) -> Any:
    """
    Convert handler results into JSON-encodable structures.

    Handles pydantic models, dataclasses, mappings, sequences, enums and
    dates; other values are returned unchanged.
    """
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return to_jsonable(dataclasses.asdict(value))
    if isinstance(value, Mapping):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, Enum):
        return to_jsonable(value.value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


__all__ = [
    "SuccessTransformer",
    "ErrorTransformer",
    "ResponseTransformers",
    "DEFAULT_TRANSFORMERS",
    "default_success",
    "default_error",
    "resolve_transformers",
    "to_jsonable",
]
