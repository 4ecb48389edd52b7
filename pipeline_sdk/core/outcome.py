# pipeline_sdk/core/outcome.py
# SPDX-License-Identifier: Apache-2.0

"""
Tagged outcome of one pipeline run.

`Success(value)` or `Failure(kind, message, status, code, details, cause)`.
Result converters only ever see these two shapes; exceptions are
canonicalized into a `Failure` exactly once, at the orchestrator boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

from pipeline_sdk.core.errors import (
    INTERNAL_ERROR_MESSAGE,
    ApiError,
    InternalError,
    ValidationErrorDetail,
)

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    """
    Canonical failure.

    Attributes:
        kind:
            Error class name (e.g. "Unauthorized", "InternalError").
        message:
            Caller-safe message. For unstructured errors this is always
            INTERNAL_ERROR_MESSAGE.
        status / code:
            Status code and machine code of the error kind.
        details:
            Field-level validation details; empty when not applicable.
        cause:
            The exception that produced this failure. Server-side only;
            converters must never render it.
    """
    kind: str
    message: str
    status: int
    code: str
    details: List[ValidationErrorDetail] = field(default_factory=list)
    cause: Optional[BaseException] = field(default=None, compare=False, repr=False)

    @property
    def ok(self) -> bool:
        return False

    @property
    def structured(self) -> bool:
        """True when the cause is part of the ApiError taxonomy."""
        return isinstance(self.cause, ApiError)

    @classmethod
    def from_exception(cls, exc: BaseException) -> "Failure":
        if isinstance(exc, ApiError):
            return cls(
                kind=type(exc).__name__,
                message=exc.message,
                status=exc.status,
                code=exc.code,
                details=list(exc.errors),
                cause=exc,
            )
        return cls(
            kind=InternalError.__name__,
            message=INTERNAL_ERROR_MESSAGE,
            status=InternalError.default_status,
            code=InternalError.default_code,
            cause=exc,
        )

    def to_error(self) -> ApiError:
        """
        Exception to raise for this failure.

        Structured causes are returned as-is; anything else becomes a fresh
        sanitized InternalError.
        """
        if isinstance(self.cause, ApiError):
            return self.cause
        return InternalError(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "message": self.message,
            "code": self.code,
            "status": self.status,
        }
        if self.details:
            body["errors"] = list(self.details)
        return body


Outcome = Union[Success[Any], Failure]


__all__ = ["Success", "Failure", "Outcome"]
