"""Tests for RequestSizeLimitMiddleware."""

import pytest
from fastapi import FastAPI
from starlette.testclient import TestClient

from hrdesk.core.middleware import RequestSizeLimitMiddleware

pytestmark = pytest.mark.security


def _app(max_bytes: int) -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=max_bytes)

    @app.post("/x")
    async def x(payload: dict):
        return {"ok": True}

    return app


def test_rejects_large_body_by_content_length():
    client = TestClient(_app(100))
    response = client.post("/x", json={"data": "a" * 500})
    assert response.status_code == 413
    body = response.json()
    assert body["error"]["code"] == "E4130"
    assert body["detail"] == "Request body too large"


def test_allows_small_body():
    client = TestClient(_app(10_000))
    response = client.post("/x", json={"data": "ok"})
    assert response.status_code == 200
    assert response.json() == {"ok": True}
