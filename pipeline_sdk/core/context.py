# pipeline_sdk/core/context.py
# SPDX-License-Identifier: Apache-2.0

"""
Per-invocation context types.

- `Principal` / `ANONYMOUS`: the identity attached to a request.
- `AuthContext`: the headers/cookies bundle handed to auth adapters.
- `RunContext` and its two shapes (`ApiContext`, `ActionContext`): the
  immutable record passed to business handlers.

Typical usage
-------------

    async def get_item(ctx: ApiContext) -> dict:
        return {"id": ctx.params["id"], "owner": ctx.user.id}

Notes
-----
- Contexts are frozen dataclasses. They are built once per invocation,
  after authentication and validation, and never mutated afterwards.
- A principal may be any object exposing `id` (attribute or mapping key);
  `Principal` is provided for adapters that have nothing better.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple

from starlette.datastructures import Headers


# =============================================================================
# Request identifiers
# =============================================================================

def generate_request_id() -> str:
    """Return a new random request identifier (UUID4, canonical text form)."""
    return str(uuid.uuid4())


# =============================================================================
# Principals
# =============================================================================

@dataclass(frozen=True)
class Principal:
    """
    Minimal principal type.

    Attributes:
        id:
            Stable identifier; empty string for the anonymous principal.
        roles:
            Role names granted to the principal.
        attrs:
            Free-form attributes (tenant id, email, ...). Never logged by the SDK.
    """
    id: str = ""
    roles: Tuple[str, ...] = ()
    attrs: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_anonymous(self) -> bool:
        return not self.id


ANONYMOUS = Principal()


def principal_id(user: Any) -> str:
    """
    Read the `id` of any principal-like value as a string.

    Supports objects with an `id` attribute and mappings with an "id" key.
    Missing or falsy ids map to "".
    """
    if user is None:
        return ""
    if isinstance(user, Mapping):
        value = user.get("id")
    else:
        value = getattr(user, "id", None)
    if value is None or value == "":
        return ""
    return str(value)


# =============================================================================
# Auth context
# =============================================================================

@dataclass(frozen=True)
class AuthContext:
    """
    Opaque bundle handed to `AuthAdapter.verify` / `is_tenant_valid`.

    `headers` always supports case-insensitive lookup; plain mappings are
    converted on construction.
    """
    headers: Headers = field(default_factory=Headers)
    cookies: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.headers, Headers):
            object.__setattr__(self, "headers", Headers(headers=dict(self.headers or {})))
        object.__setattr__(self, "cookies", dict(self.cookies or {}))

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name, default)

    def cookie(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.cookies.get(name, default)

    @classmethod
    def coerce(cls, value: Any) -> "AuthContext":
        """
        Accept an AuthContext, or a mapping with "headers"/"cookies" keys.
        """
        if isinstance(value, AuthContext):
            return value
        if isinstance(value, Mapping):
            return cls(
                headers=value.get("headers") or {},
                cookies=value.get("cookies") or {},
            )
        raise TypeError(
            f"auth context must be an AuthContext or mapping, got {type(value).__name__}"
        )


# =============================================================================
# Run contexts
# =============================================================================

@dataclass(frozen=True)
class RunContext:
    """
    Immutable per-invocation record shared by both call shapes.

    Attributes:
        request_id:
            Correlation id; echoed back as X-Request-ID on HTTP responses.
        method:
            HTTP verb, or "ACTION" for direct invocations.
        path:
            Request path, or the action name.
        user:
            Authenticated principal, or ANONYMOUS.
        started_at:
            time.monotonic() at pipeline entry.
        params / query / body:
            Validated (or raw, when no schema is configured) input slots.
    """
    request_id: str
    method: str
    path: str
    user: Any = ANONYMOUS
    started_at: float = 0.0
    params: Any = None
    query: Any = None
    body: Any = None


@dataclass(frozen=True)
class ApiContext(RunContext):
    """RunContext for HTTP handlers; adds the Starlette request and client metadata."""
    request: Any = None
    ip: str = "unknown"
    user_agent: str = "unknown"


@dataclass(frozen=True)
class ActionContext(RunContext):
    """RunContext for direct invocations; the validated input lives in `body`."""

    @property
    def input(self) -> Any:
        return self.body


__all__ = [
    "generate_request_id",
    "Principal",
    "ANONYMOUS",
    "principal_id",
    "AuthContext",
    "RunContext",
    "ApiContext",
    "ActionContext",
]
