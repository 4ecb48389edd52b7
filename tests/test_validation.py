# tests/test_validation.py
# SPDX-License-Identifier: Apache-2.0
"""
Input validation across the params / query / body slots.

Asserts:
  • pydantic models coerce and report one entry per failing field
  • JSON Schema reports nested paths and the missing property for `required`
  • Callable validators may raise ValidationFailed, ValueError or TypeError
  • validate_inputs collects failures across slots into one ValidationFailed
"""

from typing import List

import pytest
from jsonschema import Draft202012Validator
from pydantic import BaseModel, TypeAdapter

from pipeline_sdk.core.errors import ValidationFailed
from pipeline_sdk.policies.validation import RawInput, ValidationConfig, validate_inputs, validate_schema

pytestmark = pytest.mark.asyncio


class Address(BaseModel):
    city: str
    zip: str


class Signup(BaseModel):
    name: str
    age: int
    address: Address


ITEM_SCHEMA = {
    "type": "object",
    "properties": {
        "id": {"type": "string"},
        "qty": {"type": "integer", "minimum": 1},
        "owner": {
            "type": "object",
            "properties": {"email": {"type": "string"}},
            "required": ["email"],
        },
    },
    "required": ["id"],
}


async def test_pydantic_model_coerces():
    value = await validate_schema(Signup, {"name": "Ann", "age": "42", "address": {"city": "X", "zip": "1"}})
    assert isinstance(value, Signup)
    assert value.age == 42, "pydantic coerces numeric strings"


async def test_pydantic_reports_every_field_with_nested_paths():
    with pytest.raises(ValidationFailed) as exc_info:
        await validate_schema(Signup, {"age": "old", "address": {"city": "X"}})

    err = exc_info.value
    assert err.status == 422 and err.code == "VALIDATION_ERROR"
    assert err.message == "Validation failed for body"
    fields = sorted(e["field"] for e in err.errors)
    assert fields == ["address.zip", "age", "name"], f"unexpected fields: {fields}"


async def test_type_adapter_schema():
    adapter = TypeAdapter(List[int])
    assert await validate_schema(adapter, ["1", 2]) == [1, 2]
    with pytest.raises(ValidationFailed) as exc_info:
        await validate_schema(adapter, ["x"], slot="query")
    assert exc_info.value.errors[0]["field"] == "0"


async def test_json_schema_passes_value_through_unchanged():
    data = {"id": "a1", "qty": 3}
    assert await validate_schema(ITEM_SCHEMA, data) is data


async def test_json_schema_required_and_nested_paths():
    with pytest.raises(ValidationFailed) as exc_info:
        await validate_schema(ITEM_SCHEMA, {"qty": 0, "owner": {}})

    by_field = {e["field"]: e["message"] for e in exc_info.value.errors}
    assert set(by_field) == {"id", "qty", "owner.email"}, f"got {sorted(by_field)}"
    assert "required" in by_field["id"]


async def test_json_schema_root_type_error_uses_slot_name():
    with pytest.raises(ValidationFailed) as exc_info:
        await validate_schema({"type": "object"}, ["not", "an", "object"], slot="params")
    assert exc_info.value.errors == [
        {"field": "params", "message": exc_info.value.errors[0]["message"]}
    ]


async def test_jsonschema_validator_instance():
    validator = Draft202012Validator({"type": "integer"})
    assert await validate_schema(validator, 5) == 5
    with pytest.raises(ValidationFailed):
        await validate_schema(validator, "5")


async def test_callable_validators():
    def positive(value):
        if value <= 0:
            raise ValueError("must be positive")
        return value * 10

    async def lookup(value):
        raise ValidationFailed(errors=[{"field": "sku", "message": "unknown sku"}])

    assert await validate_schema(positive, 2) == 20

    with pytest.raises(ValidationFailed) as exc_info:
        await validate_schema(positive, -1, slot="query")
    assert exc_info.value.errors == [{"field": "query", "message": "must be positive"}]

    with pytest.raises(ValidationFailed) as exc_info:
        await validate_schema(lookup, {})
    assert exc_info.value.errors == [{"field": "sku", "message": "unknown sku"}]


async def test_callable_raising_pydantic_error_is_converted():
    class Order(BaseModel):
        qty: int

    with pytest.raises(ValidationFailed) as exc_info:
        await validate_schema(lambda v: Order.model_validate(v), {"qty": "many"})
    assert exc_info.value.errors[0]["field"] == "qty"


async def test_unsupported_schema_is_a_type_error():
    with pytest.raises(TypeError):
        await validate_schema(42, {})


async def test_validate_inputs_without_config_passes_through():
    raw = RawInput(params={"id": "1"}, query={"q": "x"}, body=None)
    assert await validate_inputs(None, raw) == {"params": {"id": "1"}, "query": {"q": "x"}, "body": None}
    assert await validate_inputs(ValidationConfig(), raw) == {"params": {"id": "1"}, "query": {"q": "x"}, "body": None}


async def test_validate_inputs_collects_across_slots():
    config = ValidationConfig(
        params={"type": "object", "required": ["id"]},
        query={"type": "object"},
        body=Signup,
    )
    raw = RawInput(params={}, query={"page": "1"}, body={"name": "Ann", "age": 1, "address": {"city": "X"}})

    with pytest.raises(ValidationFailed) as exc_info:
        await validate_inputs(config, raw)

    err = exc_info.value
    assert err.message == "Validation failed for params, body"
    assert [e["field"] for e in err.errors] == ["id", "address.zip"]


async def test_validate_inputs_returns_validated_values():
    config = ValidationConfig(body=Signup)
    raw = RawInput(params={"id": "7"}, body={"name": "Ann", "age": "3", "address": {"city": "X", "zip": "1"}})
    values = await validate_inputs(config, raw)
    assert values["params"] == {"id": "7"}, "slots without schema pass through"
    assert values["body"].age == 3
