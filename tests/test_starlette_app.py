# tests/test_starlette_app.py
# SPDX-License-Identifier: Apache-2.0
"""
Wrapped endpoints mounted in a Starlette application and exercised through
`TestClient`, the way applications deploy them.
"""

import pytest
from pydantic import BaseModel
from starlette.applications import Starlette
from starlette.routing import Route
from starlette.testclient import TestClient

from pipeline_sdk import (
    ApiResponse,
    CacheConfig,
    InMemoryCache,
    NotFound,
    PipelineAdapters,
    RateLimitPolicy,
    ValidationConfig,
    WrapperConfig,
    create_api_wrapper,
)
from tests.conftest import ALICE
from tests.mock.mock_adapters import MockAuth, RecordingLogger


class NewItem(BaseModel):
    name: str


@pytest.fixture
def app_and_logger():
    logger = RecordingLogger()
    store = {"1": {"id": "1", "name": "pen"}}
    api = create_api_wrapper(
        WrapperConfig(
            adapters=PipelineAdapters(
                auth=MockAuth({"alice-token": ALICE}),
                cache=InMemoryCache(),
                logger=logger,
            )
        )
    )

    @api(cache=CacheConfig(ttl_ms=60_000))
    async def get_item(ctx):
        item = store.get(ctx.params["item_id"])
        if item is None:
            raise NotFound("Item not found")
        return item

    @api(auth=["admin"], validation=ValidationConfig(body=NewItem), rate_limit=RateLimitPolicy(max=2))
    async def create_item(ctx):
        item_id = str(len(store) + 1)
        store[item_id] = {"id": item_id, "name": ctx.body.name}
        return ApiResponse.created(store[item_id])

    app = Starlette(routes=[
        Route("/items/{item_id}", get_item, methods=["GET"]),
        Route("/items", create_item, methods=["POST"]),
    ])
    return app, logger


def test_read_through_cache(app_and_logger):
    app, _ = app_and_logger
    client = TestClient(app)

    first = client.get("/items/1")
    second = client.get("/items/1", headers={"X-Request-ID": "abc"})

    assert first.status_code == 200
    assert first.json() == {"success": True, "data": {"id": "1", "name": "pen"}}
    assert first.headers["x-cache"] == "MISS"
    assert second.headers["x-cache"] == "HIT"
    assert second.headers["x-request-id"] == "abc"
    assert second.json() == first.json()


def test_not_found(app_and_logger):
    app, logger = app_and_logger
    resp = TestClient(app).get("/items/404")

    assert resp.status_code == 404
    assert resp.json() == {"success": False, "message": "Item not found", "code": "NOT_FOUND"}
    assert [a.status for a in logger.audits] == [404]


def test_create_requires_admin_and_valid_body(app_and_logger):
    app, _ = app_and_logger
    client = TestClient(app)
    auth = {"Authorization": "Bearer alice-token"}

    assert client.post("/items", json={"name": "cup"}).status_code == 401
    invalid = client.post("/items", json={}, headers=auth)
    assert invalid.status_code == 422
    assert invalid.json()["errors"] == [{"field": "name", "message": "Field required"}]

    created = client.post("/items", json={"name": "cup"}, headers=auth)
    assert created.status_code == 201
    assert created.json()["data"] == {"id": "2", "name": "cup"}

    limited = client.post("/items", json={"name": "mug"}, headers=auth)
    assert limited.status_code == 429
    assert limited.headers["retry-after"]
