"""
ClimbTime Backend - Middleware Tests
======================================

What:  Request ids and the per-IP rate limiter.
How:   Each test builds its own app with create_app() so the limiter starts
       with an empty window. The grade endpoints need no database.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from climbtime.config import settings
from climbtime.main import create_app

ROUTE_FILE = {"Route 1": [{"bbox": [1, 2, 3, 4]}]}


@pytest.fixture
def fresh_client():
    transport = ASGITransport(app=create_app())
    return AsyncClient(transport=transport, base_url="http://test")


class TestRequestID:

    @pytest.mark.asyncio
    async def test_generated_id_on_every_response(self, fresh_client):
        async with fresh_client as client:
            ok = await client.post("/api/grade/routes", json=ROUTE_FILE)
            failed = await client.post("/api/grade/routes", json=[1, 2])

        assert len(ok.headers["X-Request-ID"]) == 8
        assert failed.status_code == 400
        assert failed.json()["request_id"] == failed.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_client_id_is_reused(self, fresh_client):
        async with fresh_client as client:
            response = await client.post(
                "/api/grade/routes", json=[1, 2], headers={"X-Request-ID": "web-4711"}
            )
        assert response.headers["X-Request-ID"] == "web-4711"
        assert response.json()["request_id"] == "web-4711"


class TestRateLimit:

    @pytest.mark.asyncio
    async def test_over_limit_is_429_with_request_id(self, fresh_client, monkeypatch):
        monkeypatch.setattr(settings, "rate_limit_requests", 1)

        async with fresh_client as client:
            first = await client.post("/api/grade/routes", json=ROUTE_FILE)
            second = await client.post(
                "/api/grade/routes", json=ROUTE_FILE, headers={"X-Request-ID": "burst-2"}
            )

        assert first.status_code == 200
        assert second.status_code == 429
        body = second.json()
        assert body["error"] == "rate_limit_exceeded"
        assert body["request_id"] == "burst-2"
        assert second.headers["X-Request-ID"] == "burst-2"
        retry_after = int(second.headers["Retry-After"])
        assert 1 <= retry_after <= settings.rate_limit_window + 1
        assert body["details"] == {"retry_after": retry_after}

    @pytest.mark.asyncio
    async def test_docs_are_not_limited(self, fresh_client, monkeypatch):
        monkeypatch.setattr(settings, "rate_limit_requests", 1)

        async with fresh_client as client:
            await client.post("/api/grade/routes", json=ROUTE_FILE)
            limited = await client.post("/api/grade/routes", json=ROUTE_FILE)
            docs = await client.get("/openapi.json")

        assert limited.status_code == 429
        assert docs.status_code == 200
