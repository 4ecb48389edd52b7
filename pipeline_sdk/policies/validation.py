# pipeline_sdk/policies/validation.py
# SPDX-License-Identifier: Apache-2.0

"""
Input validation for the three request slots (params, query, body).

A schema may be any of:

- a pydantic `BaseModel` subclass: validated and coerced; the model
  instance is the validated value
- a `pydantic.TypeAdapter`: `validate_python`, coerced
- a JSON Schema mapping, or a `jsonschema` validator instance: checked
  only; the raw value is passed through unchanged
- any callable `(value) -> validated` (sync or async). It may raise
  `ValidationFailed` with field details, or `ValueError` / `TypeError`,
  which are reported against the slot as a whole.

Field paths are dot-joined and relative to the slot (`body.user.email`
is reported as `user.email`). Errors that have no path inside the slot
are reported under the slot name.

`validate_inputs` validates every configured slot and raises one
`ValidationFailed` listing all failing fields across slots.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import jsonschema
from jsonschema.validators import validator_for
from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from pipeline_sdk.core.async_bridge import maybe_await
from pipeline_sdk.core.errors import ValidationErrorDetail, ValidationFailed

LOG = logging.getLogger(__name__)

SLOTS = ("params", "query", "body")


@dataclass(frozen=True)
class ValidationConfig:
    """Per-slot schemas; a slot without a schema is passed through unvalidated."""
    params: Any = None
    query: Any = None
    body: Any = None

    def __bool__(self) -> bool:
        return any(getattr(self, s) is not None for s in SLOTS)


@dataclass(frozen=True)
class RawInput:
    params: Any = None
    query: Any = None
    body: Any = None


# =============================================================================
# Error conversion
# =============================================================================

def _join(path: Iterable[Any]) -> str:
    return ".".join(str(p) for p in path)


def _pydantic_details(exc: PydanticValidationError, slot: str) -> List[ValidationErrorDetail]:
    out: List[ValidationErrorDetail] = []
    for err in exc.errors():
        field = _join(err.get("loc") or ()) or slot
        out.append({"field": field, "message": str(err.get("msg", "Invalid value"))})
    return out


def _jsonschema_field(err: jsonschema.ValidationError, slot: str) -> str:
    path = list(err.absolute_path)
    if err.validator == "required" and isinstance(err.validator_value, Sequence):
        missing = next(
            (p for p in err.validator_value if err.message.startswith(repr(p))),
            None,
        )
        if missing is not None:
            path.append(missing)
    return _join(path) or slot


def _jsonschema_details(errors: Iterable[jsonschema.ValidationError], slot: str) -> List[ValidationErrorDetail]:
    ordered = sorted(errors, key=lambda e: tuple(str(p) for p in e.absolute_path))
    return [{"field": _jsonschema_field(e, slot), "message": e.message} for e in ordered]


def _fail(slot: str, details: List[ValidationErrorDetail]) -> ValidationFailed:
    return ValidationFailed(f"Validation failed for {slot}", errors=details)


# =============================================================================
# Single slot
# =============================================================================

async def validate_schema(schema: Any, data: Any, slot: str = "body") -> Any:
    """
    Validate `data` against `schema`.

    Returns:
        The validated (possibly coerced) value.

    Raises:
        ValidationFailed: with one entry per failing field.
    """
    if isinstance(schema, type) and issubclass(schema, BaseModel):
        try:
            return schema.model_validate(data)
        except PydanticValidationError as exc:
            raise _fail(slot, _pydantic_details(exc, slot)) from exc

    if isinstance(schema, TypeAdapter):
        try:
            return schema.validate_python(data)
        except PydanticValidationError as exc:
            raise _fail(slot, _pydantic_details(exc, slot)) from exc

    if isinstance(schema, Mapping):
        validator = validator_for(schema)(schema)
        details = _jsonschema_details(validator.iter_errors(data), slot)
        if details:
            raise _fail(slot, details)
        return data

    if hasattr(schema, "iter_errors"):
        details = _jsonschema_details(schema.iter_errors(data), slot)
        if details:
            raise _fail(slot, details)
        return data

    if callable(schema):
        try:
            return await maybe_await(schema(data))
        except ValidationFailed:
            raise
        except PydanticValidationError as exc:
            raise _fail(slot, _pydantic_details(exc, slot)) from exc
        except jsonschema.ValidationError as exc:
            raise _fail(slot, _jsonschema_details([exc], slot)) from exc
        except (ValueError, TypeError) as exc:
            raise _fail(slot, [{"field": slot, "message": str(exc) or "Invalid value"}]) from exc

    raise TypeError(f"unsupported schema type for {slot}: {type(schema).__name__}")


# =============================================================================
# All slots
# =============================================================================

async def validate_inputs(config: Optional[ValidationConfig], raw: RawInput) -> Dict[str, Any]:
    """
    Validate each slot that has a schema; unvalidated slots pass through.

    Returns:
        {"params": ..., "query": ..., "body": ...}

    Raises:
        ValidationFailed: listing every failing field of every failing slot.
    """
    values: Dict[str, Any] = {slot: getattr(raw, slot) for slot in SLOTS}
    if not config:
        return values

    failed: List[str] = []
    details: List[ValidationErrorDetail] = []
    for slot in SLOTS:
        schema = getattr(config, slot)
        if schema is None:
            continue
        try:
            values[slot] = await validate_schema(schema, values[slot], slot)
        except ValidationFailed as exc:
            failed.append(slot)
            details.extend(exc.errors)

    if failed:
        raise ValidationFailed(f"Validation failed for {', '.join(failed)}", errors=details)
    return values


__all__ = [
    "SLOTS",
    "ValidationConfig",
    "RawInput",
    "validate_schema",
    "validate_inputs",
]
