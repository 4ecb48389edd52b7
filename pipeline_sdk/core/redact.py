# pipeline_sdk/core/redact.py
# SPDX-License-Identifier: Apache-2.0

"""
Redaction helpers for log payloads.

`redact()` walks mappings and sequences and replaces the value of any key
whose lowercased name contains a sensitive fragment. `redact_headers()`
masks credential-bearing headers by exact name.

Inputs are never mutated; redacted copies are returned.
"""

from __future__ import annotations

from typing import Any, Dict, FrozenSet, Iterable, Mapping

REDACTED = "[REDACTED]"

SENSITIVE_FIELDS: FrozenSet[str] = frozenset(
    {
        "password",
        "token",
        "secret",
        "apikey",
        "api_key",
        "authorization",
        "cookie",
        "creditcard",
        "credit_card",
        "ssn",
        "cvv",
    }
)

SENSITIVE_HEADERS: FrozenSet[str] = frozenset(
    {
        "authorization",
        "cookie",
        "set-cookie",
        "x-api-key",
        "x-auth-token",
        "x-access-token",
    }
)


def _is_sensitive(key: str, fields: FrozenSet[str]) -> bool:
    lowered = key.lower()
    return any(f in lowered for f in fields)


def _redact(value: Any, fields: FrozenSet[str]) -> Any:
    if isinstance(value, Mapping):
        return {
            k: REDACTED if _is_sensitive(str(k), fields) else _redact(v, fields)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(_redact(v, fields) for v in value)
    return value


def redact(obj: Any, extra_fields: Iterable[str] = ()) -> Any:
    """
    Return a copy of `obj` with sensitive values replaced by "[REDACTED]".

    Args:
        obj:
            Any value; only mappings and lists/tuples are traversed.
        extra_fields:
            Additional key fragments to treat as sensitive (case-insensitive).
    """
    fields = SENSITIVE_FIELDS | frozenset(f.lower() for f in extra_fields)
    return _redact(obj, fields)


def redact_headers(headers: Mapping[str, str]) -> Dict[str, str]:
    """Copy `headers` into a plain dict with credential headers masked."""
    return {
        k: REDACTED if k.lower() in SENSITIVE_HEADERS else v
        for k, v in headers.items()
    }


__all__ = [
    "REDACTED",
    "SENSITIVE_FIELDS",
    "SENSITIVE_HEADERS",
    "redact",
    "redact_headers",
]
