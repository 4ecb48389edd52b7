# pipeline_sdk/policies/cache.py
# SPDX-License-Identifier: Apache-2.0

"""
Response caching for read-only requests.

HTTP path
---------
Only GET requests are cached. The default key is
`cache:GET:<path>[?<query>]`; callers may supply `key_generator(request)`.

A stored entry is a plain envelope:

    {"body": "<text>", "status": 200, "headers": {"content-type": "..."}}

A hit is served verbatim with `X-Cache: HIT` and the new request's
`X-Request-ID`. Per-request headers are never stored.

There is no single-flight: concurrent misses for one key each run the
handler and each write the entry; the last write wins.

Direct-invocation path
----------------------
`ActionCacheConfig` keys results by action name and input
(`action:<name>:<key>`). Only successful envelopes are stored.

Cache adapter failures never fail a request. A failed read is a miss and a
failed write is skipped; both are logged.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

from starlette.requests import Request
from starlette.responses import Response

from pipeline_sdk.adapters.logger import safe_log
from pipeline_sdk.core.async_bridge import maybe_await

LOG = logging.getLogger(__name__)

CACHE_HEADER = "X-Cache"
REQUEST_ID_HEADER = "X-Request-ID"

# Headers that belong to a single response and are never replayed.
_UNCACHED_HEADERS = frozenset({"x-request-id", "x-cache", "set-cookie"})


@dataclass(frozen=True)
class CacheConfig:
    """
    Attributes:
        ttl_ms:        Entry lifetime, passed to the cache adapter.
        key_generator: Optional `request -> str` replacing the default key.
        success_only:  Cache only 2xx responses (default). False caches all.
    """
    ttl_ms: int
    key_generator: Optional[Callable[[Request], str]] = None
    success_only: bool = True

    def __post_init__(self):
        if self.ttl_ms <= 0:
            raise ValueError("ttl_ms must be positive")


@dataclass(frozen=True)
class ActionCacheConfig:
    """
    Attributes:
        ttl_ms:        Entry lifetime, passed to the cache adapter.
        key_generator: Optional `input -> str`; defaults to canonical JSON of the input.
    """
    ttl_ms: int
    key_generator: Optional[Callable[[Any], str]] = None

    def __post_init__(self):
        if self.ttl_ms <= 0:
            raise ValueError("ttl_ms must be positive")


# =============================================================================
# Keys
# =============================================================================

def generate_cache_key(request: Request) -> str:
    url = request.url
    search = f"?{url.query}" if url.query else ""
    return f"cache:{request.method}:{url.path}{search}"


def get_cache_key(request: Request, config: CacheConfig) -> str:
    if config.key_generator is not None:
        return config.key_generator(request)
    return generate_cache_key(request)


def build_action_cache_key(name: str, value: Any, config: ActionCacheConfig) -> str:
    if config.key_generator is not None:
        suffix = config.key_generator(value)
    else:
        suffix = json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)
    return f"action:{name}:{suffix}"


# =============================================================================
# HTTP envelopes
# =============================================================================

def should_cache_response(status: int, success_only: bool = True) -> bool:
    if success_only:
        return 200 <= status < 300
    return True


def response_to_envelope(response: Response) -> Optional[Dict[str, Any]]:
    """
    Serialize a buffered response; returns None when it cannot be stored
    (streaming body or non-UTF-8 content).
    """
    body = getattr(response, "body", None)
    if not isinstance(body, (bytes, bytearray)):
        return None
    try:
        text = bytes(body).decode("utf-8")
    except UnicodeDecodeError:
        return None
    headers = {
        k: v for k, v in response.headers.items() if k.lower() not in _UNCACHED_HEADERS
    }
    return {"body": text, "status": response.status_code, "headers": headers}


def envelope_to_response(envelope: Mapping[str, Any], request_id: str) -> Response:
    headers = dict(envelope.get("headers") or {})
    headers[REQUEST_ID_HEADER] = request_id
    headers[CACHE_HEADER] = "HIT"
    return Response(
        content=envelope.get("body", ""),
        status_code=int(envelope.get("status", 200)),
        headers=headers,
    )


async def get_cached(cache: Any, key: str, *, logger: Any = None, request_id: str = "") -> Optional[Any]:
    """Read `key`; adapter failures are logged and reported as a miss."""
    try:
        value = await maybe_await(cache.get(key))
    except Exception as exc:  # noqa: BLE001
        LOG.debug("cache read failed for %s", key, exc_info=True)
        await safe_log(logger, "warning", "Cache read failed", {"request_id": request_id, "cache_key": key, "error": str(exc)})
        return None
    if value is not None:
        await safe_log(logger, "debug", "Cache hit", {"request_id": request_id, "cache_key": key})
    return value


async def set_cached(
    cache: Any,
    key: str,
    value: Any,
    ttl_ms: int,
    *,
    logger: Any = None,
    request_id: str = "",
) -> bool:
    """Write `key`; returns False (after logging) when the adapter fails."""
    try:
        await maybe_await(cache.set(key, value, ttl_ms))
    except Exception as exc:  # noqa: BLE001
        LOG.debug("cache write failed for %s", key, exc_info=True)
        await safe_log(logger, "warning", "Cache write failed", {"request_id": request_id, "cache_key": key, "error": str(exc)})
        return False
    await safe_log(
        logger,
        "debug",
        "Cache set",
        {"request_id": request_id, "cache_key": key, "ttl_ms": ttl_ms},
    )
    return True


__all__ = [
    "CACHE_HEADER",
    "REQUEST_ID_HEADER",
    "CacheConfig",
    "ActionCacheConfig",
    "generate_cache_key",
    "get_cache_key",
    "build_action_cache_key",
    "should_cache_response",
    "response_to_envelope",
    "envelope_to_response",
    "get_cached",
    "set_cached",
]
