"""Tests for middleware: request ids, timeouts, error formatting."""

import asyncio

import pytest
from httpx import ASGITransport, AsyncClient

from ecostep.config import Settings
from ecostep.main import create_app


class TestRequestId:
    @pytest.mark.asyncio
    async def test_generated_when_absent(self, client):
        response = await client.get("/health")
        assert len(response.headers["X-Request-Id"]) == 36

    @pytest.mark.asyncio
    async def test_propagated(self, client):
        response = await client.get("/health", headers={"X-Request-Id": "req-123"})
        assert response.headers["X-Request-Id"] == "req-123"

    @pytest.mark.asyncio
    async def test_unsafe_id_replaced(self, client):
        response = await client.get("/health", headers={"X-Request-Id": "bad id with spaces"})
        assert response.headers["X-Request-Id"] != "bad id with spaces"
        assert len(response.headers["X-Request-Id"]) == 36


class TestErrorFormat:
    @pytest.mark.asyncio
    async def test_unknown_route_is_json(self, client):
        response = await client.get("/api/nope")
        assert response.status_code == 404
        assert response.json() == {"detail": "Not Found"}

    @pytest.mark.asyncio
    async def test_malformed_json(self, client):
        response = await client.post(
            "/api/activities",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "INVALID_INPUT"
        assert data["errors"]


class TestTimeout:
    @pytest.mark.asyncio
    async def test_slow_request_times_out(self):
        settings = Settings(
            storage_backend="memory",
            log_format="console",
            request_timeout_seconds=0.05,
        )
        app = create_app(settings)

        @app.get("/slow")
        async def slow() -> dict[str, str]:
            await asyncio.sleep(1)
            return {"status": "done"}

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            response = await ac.get("/slow")

        assert response.status_code == 504
        assert response.json() == {"detail": "Request timed out"}
