"""
Knowledge Scout Backend - Application & Error Handling Tests
============================================================

What we test:
    ✅ Liveness routes answer without the database or the LLM
    ✅ Unmatched routes → structured 404 route_not_found
    ✅ Unhandled exceptions → structured 500, detail only outside production
    ✅ Domain errors carry their status, code and headers
"""

import asyncio

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from conftest import FakeLLM, make_settings
from scout.main import create_app
from scout.routes import health


async def _boom():
    raise RuntimeError("kaboom: secret internals")


@pytest_asyncio.fixture
async def make_client(tmp_path):
    """Build an in-process client for an app with custom settings."""
    stack = []

    async def factory(**overrides):
        app = create_app(make_settings(tmp_path, **overrides), llm=FakeLLM())
        app.add_api_route("/api/explode", _boom, methods=["GET"])
        lifespan = app.router.lifespan_context(app)
        await lifespan.__aenter__()
        http = AsyncClient(
            transport=ASGITransport(app=app, raise_app_exceptions=False),
            base_url="http://test",
        )
        stack.append((lifespan, http))
        return http

    yield factory

    for lifespan, http in reversed(stack):
        await http.aclose()
        await lifespan.__aexit__(None, None, None)


class TestHealth:

    @pytest.mark.asyncio
    async def test_liveness_probe(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "OK"}

    @pytest.mark.asyncio
    async def test_api_health_reports_runtime_facts(self, client):
        response = await client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "OK"
        assert body["environment"] == "test"
        assert body["uptime"] >= 0
        assert "timestamp" in body

    @pytest.mark.asyncio
    async def test_root_connectivity_check(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Knowledge Scout API is running"
        assert body["status"] == "healthy"

    def test_each_health_route_is_registered_once(self, app):
        router_paths = [route.path for route in health.router.routes]
        schema_paths = app.openapi()["paths"]

        for path in ("/health", "/api/health", "/"):
            assert router_paths.count(path) == 1
            assert list(schema_paths[path]) == ["get"]

    @pytest.mark.asyncio
    async def test_health_survives_database_outage(self, make_client, tmp_path):
        unreachable = tmp_path / "missing-dir" / "nested" / "scout.db"
        http = await make_client(database_url=f"sqlite+aiosqlite:///{unreachable}")

        for path in ("/health", "/api/health", "/"):
            response = await http.get(path)
            assert response.status_code == 200

        # Data routes fail cleanly instead of taking the process down
        response = await http.post(
            "/api/auth/login", json={"email": "admin@mail.com", "password": "admin123"}
        )
        assert response.status_code == 500
        assert response.json()["error"] == "internal_server_error"

    @pytest.mark.asyncio
    async def test_concurrent_health_checks(self, client):
        responses = await asyncio.gather(*(client.get("/api/health") for _ in range(25)))

        assert all(r.status_code == 200 for r in responses)


class TestErrorPayloads:

    @pytest.mark.asyncio
    async def test_unmatched_route_is_structured_404(self, client):
        response = await client.get("/api/nothing/here")

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "route_not_found"
        assert "/api/nothing/here" in body["message"]
        assert body["request_id"] == response.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_unhandled_error_shows_detail_outside_production(self, make_client):
        http = await make_client(environment="development")

        response = await http.get("/api/explode")

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "internal_server_error"
        assert body["details"]["detail"] == "kaboom: secret internals"
        assert body["details"]["exception"] == "RuntimeError"

    @pytest.mark.asyncio
    async def test_unhandled_error_hides_detail_in_production(self, make_client):
        http = await make_client(environment="production")

        response = await http.get("/api/explode")

        assert response.status_code == 500
        body = response.json()
        assert body["message"] == "Internal server error"
        assert "details" not in body
        assert "kaboom" not in response.text

    @pytest.mark.asyncio
    async def test_server_keeps_serving_after_unhandled_error(self, make_client):
        http = await make_client()

        await http.get("/api/explode")
        response = await http.get("/health")

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_unhandled_error_passes_through_the_middleware_chain(self, make_client):
        http = await make_client()

        response = await http.get("/api/explode", headers={"Origin": "http://ui.example"})

        assert response.status_code == 500
        assert response.headers["Access-Control-Allow-Origin"] == "http://ui.example"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert "Content-Security-Policy" in response.headers
        body = response.json()
        assert body["request_id"]
        assert body["request_id"] == response.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_missing_token_is_401_with_challenge(self, client):
        response = await client.get("/api/documents")

        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_garbage_token_is_401(self, client):
        response = await client.get(
            "/api/documents", headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_request_validation_is_structured(self, client):
        response = await client.post("/api/auth/register", json={"name": "x"})

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "request_validation_error"
        assert body["details"]["errors"]

    @pytest.mark.asyncio
    async def test_production_sends_hsts(self, make_client):
        http = await make_client(environment="production")

        response = await http.get("/health")

        assert "max-age=" in response.headers["Strict-Transport-Security"]
