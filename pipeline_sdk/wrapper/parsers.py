# pipeline_sdk/wrapper/parsers.py
# SPDX-License-Identifier: Apache-2.0

"""
Starlette request parsing used by the HTTP wrapper.

Bodies are parsed by content type:

- application/json                   -> decoded JSON (malformed -> BadRequest)
- application/x-www-form-urlencoded  -> dict of fields
- multipart/form-data                -> dict of fields (files as UploadFile)
- anything else                      -> {}

GET and HEAD requests never have their body read.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from starlette.formparsers import MultiPartException
from starlette.requests import Request

from pipeline_sdk.core.context import AuthContext
from pipeline_sdk.core.errors import BadRequest

_BODYLESS_METHODS = frozenset({"GET", "HEAD"})


def get_client_ip(request: Request) -> str:
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    if request.client is not None and request.client.host:
        return request.client.host
    return "unknown"


def get_user_agent(request: Request) -> str:
    return request.headers.get("user-agent") or "unknown"


def parse_query(request: Request) -> Dict[str, str]:
    """Query string as a flat dict; repeated keys keep the last value."""
    return dict(request.query_params)


async def parse_body(request: Request) -> Optional[Any]:
    if request.method.upper() in _BODYLESS_METHODS:
        return None

    content_type = request.headers.get("content-type", "")

    if "application/json" in content_type:
        try:
            return await request.json()
        except ValueError as exc:
            raise BadRequest("Invalid JSON body") from exc

    if "application/x-www-form-urlencoded" in content_type:
        try:
            form = await request.form()
        except (MultiPartException, ValueError) as exc:
            raise BadRequest("Invalid form body") from exc
        return dict(form)

    if "multipart/form-data" in content_type:
        try:
            form = await request.form()
        except (MultiPartException, ValueError) as exc:
            raise BadRequest("Invalid multipart body") from exc
        return dict(form)

    return {}


def build_auth_context(request: Request) -> AuthContext:
    return AuthContext(headers=request.headers, cookies=request.cookies)


__all__ = [
    "get_client_ip",
    "get_user_agent",
    "parse_query",
    "parse_body",
    "build_auth_context",
]
