# tests/test_responses.py
# SPDX-License-Identifier: Apache-2.0
"""
Response envelopes and transformers.

Asserts:
  • Default success / error envelope shapes
  • Transformer resolution: call-level > instance-level > built-in, per half
  • ApiResponse builders return Starlette responses; error factories return raisable errors
  • Action envelopes merge transformer extras without overriding `success`
"""

import dataclasses
from datetime import datetime, timezone
from enum import Enum

import pytest
from pydantic import BaseModel
from starlette.responses import JSONResponse

from pipeline_sdk.core.errors import Conflict, NotFound, ServiceUnavailable, ValidationFailed
from pipeline_sdk.core.outcome import Failure
from pipeline_sdk.response.action import (
    ActionResponse,
    ActionResponses,
    action_error,
    action_success,
    is_envelope,
)
from pipeline_sdk.response.api import ApiResponse, ApiResponses, create_error_response
from pipeline_sdk.response.transformers import (
    ResponseTransformers,
    default_error,
    default_success,
    resolve_transformers,
    to_jsonable,
)
from tests.conftest import response_json


def _wrapped(data, status):
    return {"ok": True, "status": status, "result": data}


def _flat_error(message, code, status, errors=None):
    return {"ok": False, "error": code, "detail": message}


def test_default_envelopes():
    assert default_success({"a": 1}, 200) == {"success": True, "data": {"a": 1}}
    assert default_error("nope", "FORBIDDEN", 403) == {
        "success": False,
        "message": "nope",
        "code": "FORBIDDEN",
    }
    with_errors = default_error("bad", "VALIDATION_ERROR", 422, [{"field": "x", "message": "y"}])
    assert with_errors["errors"] == [{"field": "x", "message": "y"}]


def test_resolve_transformers_precedence_per_half():
    call = ResponseTransformers(success=_wrapped)
    instance = ResponseTransformers(success=lambda d, s: "instance", error=_flat_error)

    resolved = resolve_transformers(call, instance)
    assert resolved.success is _wrapped, "call-level success wins"
    assert resolved.error is _flat_error, "missing call-level half falls back to instance"

    resolved = resolve_transformers(None, None)
    assert resolved.success is default_success
    assert resolved.error is default_error


def test_api_response_success_and_created():
    resp = ApiResponse.success({"id": 1})
    assert isinstance(resp, JSONResponse)
    assert resp.status_code == 200
    assert response_json(resp) == {"success": True, "data": {"id": 1}}

    created = ApiResponse.created({"id": 2})
    assert created.status_code == 201

    assert ApiResponse.no_content().status_code == 204


def test_api_response_custom_headers_and_call_transformers():
    resp = ApiResponse.response(
        [1, 2],
        status=202,
        headers={"Location": "/jobs/9"},
        transformers=ResponseTransformers(success=_wrapped),
    )
    assert resp.status_code == 202
    assert resp.headers["location"] == "/jobs/9"
    assert response_json(resp) == {"ok": True, "status": 202, "result": [1, 2]}


def test_instance_transformers_apply_to_builders():
    api = ApiResponses(ResponseTransformers(success=_wrapped, error=_flat_error))
    assert response_json(api.success("x")) == {"ok": True, "status": 200, "result": "x"}
    body = response_json(api.error_response(NotFound("gone")))
    assert body == {"ok": False, "error": "NOT_FOUND", "detail": "gone"}


def test_error_factories_return_raisable_errors():
    err = ApiResponse.conflict()
    assert isinstance(err, Conflict)
    with pytest.raises(Conflict):
        raise err

    generic = ApiResponse.error("maintenance", 503)
    assert isinstance(generic, ServiceUnavailable)
    assert generic.code == "SERVICE_UNAVAILABLE", "code defaults to the kind's code"

    v = ApiResponse.validation_error(errors=[{"field": "email", "message": "invalid"}])
    assert isinstance(v, ValidationFailed)
    assert v.errors == [{"field": "email", "message": "invalid"}]


def test_create_error_response_from_failure():
    failure = Failure.from_exception(RuntimeError("secret internals"))
    resp = create_error_response(failure, headers={"X-Request-ID": "r-1"})

    assert resp.status_code == 500
    assert resp.headers["x-request-id"] == "r-1"
    assert response_json(resp) == {
        "success": False,
        "message": "Internal server error",
        "code": "INTERNAL_ERROR",
    }


def test_action_envelopes():
    assert action_success({"id": 1}) == {"success": True, "data": {"id": 1}}
    err = action_error("Access denied", "FORBIDDEN", 403)
    assert err == {"success": False, "error": {"message": "Access denied", "code": "FORBIDDEN", "status": 403}}

    details = [{"field": "name", "message": "required"}]
    err = action_error("Validation failed for body", "VALIDATION_ERROR", 422, details)
    assert err["error"]["errors"] == details


def test_action_envelopes_merge_transformer_extras():
    t = ResponseTransformers(
        success=lambda data, status: {"success": "ignored", "meta": {"status": status}},
        error=lambda m, c, s, e=None: {"hint": f"see docs for {c}"},
    )
    ok = action_success("v", 201, t)
    assert ok == {"success": True, "data": "v", "meta": {"status": 201}}, \
        "success tag is never overridden by transformer output"

    failed = action_error("nope", "FORBIDDEN", 403, None, t)
    assert failed["error"]["hint"] == "see docs for FORBIDDEN"
    assert failed["success"] is False


def test_action_response_helpers():
    assert ActionResponse.success(1) == {"success": True, "data": 1}
    assert ActionResponses.is_success(ActionResponse.created(2))
    assert ActionResponses.is_error({"success": False, "error": {}})

    with pytest.raises(NotFound):
        ActionResponse.not_found("missing")
    with pytest.raises(ServiceUnavailable) as exc_info:
        ActionResponse.error("down", 503)
    assert exc_info.value.message == "down"


def test_is_envelope():
    assert is_envelope({"success": True, "data": None})
    assert is_envelope({"success": False, "error": {"message": "x"}})
    assert not is_envelope({"success": True})
    assert not is_envelope({"success": "yes", "data": 1})
    assert not is_envelope([1, 2])


class Color(Enum):
    RED = "red"


class Item(BaseModel):
    id: int
    created: datetime


@dataclasses.dataclass
class Point:
    x: int
    y: int


def test_to_jsonable_handles_common_result_types():
    when = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    value = {
        "item": Item(id=1, created=when),
        "point": Point(1, 2),
        "color": Color.RED,
        "tags": ("a", "b"),
        "at": when,
    }
    assert to_jsonable(value) == {
        "item": {"id": 1, "created": "2024-01-02T03:04:05Z"},
        "point": {"x": 1, "y": 2},
        "color": "red",
        "tags": ["a", "b"],
        "at": "2024-01-02T03:04:05+00:00",
    }
