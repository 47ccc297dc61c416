"""
Tests for employee_directory/main.py - Application wiring, health and error envelopes.
"""
import json
import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from fastapi import status


class TestHealthEndpoint:
    """Test application health check endpoint."""

    @pytest.mark.asyncio
    async def test_health_check_healthy(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["checks"] == {"database": True}
        assert body["environment"] == "development"

    @pytest.mark.asyncio
    async def test_health_check_unhealthy_when_db_down(self, client, seeded_database):
        with patch.object(seeded_database, "check_connection", new=AsyncMock(return_value=False)):
            response = await client.get("/health")

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["status"] == "unhealthy"

    @pytest.mark.asyncio
    async def test_root(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["success"] is True


class TestErrorEnvelopes:
    """Errors outside the routers still use the {success, error} shape."""

    @pytest.mark.asyncio
    async def test_unknown_route(self, client):
        response = await client.get("/api/v1/nowhere")

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Route /api/v1/nowhere not found"}

    @pytest.mark.asyncio
    async def test_method_not_allowed(self, client):
        response = await client.patch("/api/v1/auth/login")

        assert response.status_code == 405
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_security_headers(self, client):
        response = await client.get("/health")

        assert response.headers["x-content-type-options"] == "nosniff"
        assert response.headers["x-frame-options"] == "DENY"

    @pytest.mark.asyncio
    async def test_unhandled_exception_in_development(self, client):
        from employee_directory.services import reference_data_service
        from conftest import auth_headers, login, CEO_EMAIL, CEO_PASSWORD

        token = (await login(client, CEO_EMAIL, CEO_PASSWORD)).json()["data"]["accessToken"]
        with patch.object(
            reference_data_service,
            "list_locations",
            new=AsyncMock(side_effect=RuntimeError("boom")),
        ):
            response = await client.get("/api/v1/misc/locations", headers=auth_headers(token))

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "RuntimeError: boom"}


class TestGlobalExceptionHandler:
    """Production hides exception details behind a reference id."""

    @pytest.mark.asyncio
    async def test_production_hides_details(self, monkeypatch):
        from fastapi import FastAPI
        from employee_directory import main
        from employee_directory.core.config import settings

        monkeypatch.setattr(settings, "ENVIRONMENT", "production")
        app = FastAPI()
        main.register_exception_handlers(app)
        handler = app.exception_handlers[Exception]

        request = MagicMock()
        request.method = "GET"
        request.url.path = "/api/v1/test"
        response = await handler(request, ValueError("secret detail"))

        assert response.status_code == 500
        assert b"secret detail" not in response.body
        assert b"Reference ID" in response.body

    @pytest.mark.asyncio
    async def test_integrity_error_is_generic_conflict(self):
        from fastapi import FastAPI
        from sqlalchemy.exc import IntegrityError
        from employee_directory import main

        app = FastAPI()
        main.register_exception_handlers(app)
        handler = app.exception_handlers[IntegrityError]

        request = MagicMock()
        request.method = "POST"
        request.url.path = "/api/v1/employees"
        exc = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))
        response = await handler(request, exc)

        assert response.status_code == 409
        assert json.loads(response.body) == {"success": False, "error": "Duplicate field value"}


class TestRequestSizeLimit:

    @pytest.mark.asyncio
    async def test_oversized_body_rejected(self):
        from fastapi import FastAPI
        from httpx import AsyncClient, ASGITransport
        from employee_directory.core.middleware import RequestSizeLimitMiddleware

        app = FastAPI()
        app.add_middleware(RequestSizeLimitMiddleware, max_size=16)

        @app.post("/echo")
        async def echo():
            return {"ok": True}

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
            small = await ac.post("/echo", content=b"x" * 8)
            large = await ac.post("/echo", content=b"x" * 64)

        assert small.status_code == 200
        assert large.status_code == 413
        assert large.json()["success"] is False
