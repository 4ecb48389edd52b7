# pipeline_sdk/core/error_context.py
# SPDX-License-Identifier: Apache-2.0

"""
Attach pipeline context to exceptions as they leave a handler.

When the orchestrator catches an unstructured exception it records where it
happened (request id, method, path, pipeline stage) on the exception object
itself, under `__pipeline_context__`. The exception's type, message and
traceback are left untouched, so the server-side error log and any
exception tracker downstream still see the original error.

    try:
        ...
    except Exception as exc:
        attach_context(exc, request_id=ctx.request_id, stage="execute")
        raise

Later:

    ctx = get_context(exc)
    ctx.get("stage")  # "execute"

Repeated calls merge; earlier keys win so the innermost layer's view is kept.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping

LOG = logging.getLogger(__name__)

_ATTR = "__pipeline_context__"


def attach_context(exc: BaseException, **context: Any) -> None:
    """
    Merge `context` into the exception's pipeline context.

    Never raises; attachment failures are logged at debug level.
    """
    try:
        merged: Dict[str, Any] = dict(context)
        existing = getattr(exc, _ATTR, None)
        if isinstance(existing, Mapping):
            merged.update(existing)
        setattr(exc, _ATTR, merged)
    except Exception as attachment_error:  # noqa: BLE001
        LOG.debug(
            "Failed to attach pipeline context to %s: %s",
            type(exc).__name__,
            attachment_error,
        )


def get_context(exc: BaseException) -> Mapping[str, Any]:
    """Return the attached pipeline context, or an empty dict."""
    ctx = getattr(exc, _ATTR, None)
    if isinstance(ctx, Mapping):
        return ctx
    return {}


def has_context(exc: BaseException) -> bool:
    return bool(get_context(exc))


__all__ = ["attach_context", "get_context", "has_context"]
