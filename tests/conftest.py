# tests/conftest.py
# SPDX-License-Identifier: Apache-2.0
"""
Shared fixtures for the pipeline SDK test-suite.

`make_request` builds a real Starlette `Request` from a raw ASGI scope so
wrapped endpoints can be awaited directly, without a server or test client.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import urlencode

import pytest
from starlette.requests import Request

from pipeline_sdk.adapters.memory import InMemoryCache
from pipeline_sdk.core.context import Principal
from tests.mock.mock_adapters import MockAuth, RecordingLogger, RecordingMetrics


def make_request(
    method: str = "GET",
    path: str = "/",
    *,
    query: Optional[Mapping[str, str]] = None,
    headers: Optional[Mapping[str, str]] = None,
    json_body: Any = None,
    body: bytes = b"",
    path_params: Optional[Dict[str, Any]] = None,
    client: Optional[Tuple[str, int]] = ("127.0.0.1", 50000),
) -> Request:
    """Build a Starlette Request with an in-memory body."""
    hdrs = {k.lower(): v for k, v in (headers or {}).items()}
    if json_body is not None:
        body = json.dumps(json_body).encode("utf-8")
        hdrs.setdefault("content-type", "application/json")

    scope = {
        "type": "http",
        "http_version": "1.1",
        "method": method.upper(),
        "scheme": "http",
        "path": path,
        "raw_path": path.encode("latin-1"),
        "root_path": "",
        "query_string": urlencode(dict(query or {})).encode("latin-1"),
        "headers": [(k.encode("latin-1"), v.encode("latin-1")) for k, v in hdrs.items()],
        "path_params": dict(path_params or {}),
        "client": client,
        "server": ("testserver", 80),
    }
    sent = False

    async def receive() -> Dict[str, Any]:
        nonlocal sent
        if sent:
            return {"type": "http.disconnect"}
        sent = True
        return {"type": "http.request", "body": body, "more_body": False}

    return Request(scope, receive)


def response_json(response: Any) -> Any:
    return json.loads(bytes(response.body).decode("utf-8"))


ALICE = Principal(id="u-alice", roles=("admin",), attrs={"tenant": "acme"})
BOB = Principal(id="u-bob", roles=("viewer",), attrs={"tenant": "globex"})


@pytest.fixture
def logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def cache() -> InMemoryCache:
    return InMemoryCache()


@pytest.fixture
def metrics() -> RecordingMetrics:
    return RecordingMetrics()


@pytest.fixture
def auth() -> MockAuth:
    return MockAuth({"alice-token": ALICE, "bob-token": BOB})
