"""
Knowledge Scout Backend - Test Configuration (conftest.py)
==========================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets its own Settings (temp SQLite file, temp storage),
       its own app built by create_app(), and a fake LLM, so tests never
       share state and never call Gemini.

Fixture Hierarchy:
    settings ─▶ app (lifespan entered) ─▶ client       (raw httpx, in-process)
                                      ├─▶ scout        (typed ScoutClient, in-process)
                                      └─▶ auth_headers (registered user + bearer header)
"""

import asyncio
import os
from typing import AsyncGenerator, List

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Keep a developer's .env / shell from leaking into tests
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.pop("GEMINI_API_KEY", None)

from scout.client import ClientSettings, ScoutClient  # noqa: E402
from scout.config import Settings  # noqa: E402
from scout.exceptions import LLMServiceError  # noqa: E402
from scout.main import create_app  # noqa: E402
from scout.services.llm_base import LLMService  # noqa: E402


class FakeLLM(LLMService):
    """
    In-memory LLMService.

    Records every prompt; returns `reply`, or raises LLMServiceError when
    `fail` is set.
    """

    def __init__(self, reply: str = "This is a generated answer."):
        self.reply = reply
        self.fail = False
        self.prompts: List[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.fail:
            raise LLMServiceError(retry_after=30)
        return self.reply

    async def health_check(self) -> bool:
        return not self.fail


def make_settings(tmp_path, **overrides) -> Settings:
    values = dict(
        host="127.0.0.1",
        port=0,
        environment="test",
        log_level="WARNING",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'scout_test.db'}",
        storage_root=str(tmp_path / "uploads"),
        jwt_secret="test-secret",
        demo_seed_delay=0,
        shutdown_grace_seconds=5,
        gemini_api_key="",
    )
    values.update(overrides)
    return Settings(**values)


async def wait_until(predicate, timeout: float = 5.0, interval: float = 0.02) -> None:
    """Poll `predicate` until it is truthy or fail the test."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            pytest.fail(f"condition not met within {timeout}s")
        await asyncio.sleep(interval)


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def settings(tmp_path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest_asyncio.fixture
async def app(settings, fake_llm):
    """A fresh app with its lifespan entered (tables created, storage ready)."""
    application = create_app(settings, llm=fake_llm)
    async with application.router.lifespan_context(application):
        yield application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX AsyncClient talking to the app in-process.

    raise_app_exceptions=False: unhandled errors come back as the 500
    payload instead of being re-raised into the test.
    """
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


@pytest.fixture
def scout(app) -> ScoutClient:
    """Typed client over the in-process app."""
    return ScoutClient.from_settings(
        ClientSettings(api_url="http://test/api", timeout_seconds=10),
        transport=ASGITransport(app=app),
    )


async def register(
    client: AsyncClient,
    email: str = "reader@mail.com",
    name: str = "Reader",
    password: str = "secret123",
) -> dict:
    response = await client.post(
        "/api/auth/register",
        json={"name": name, "email": email, "password": password},
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest_asyncio.fixture
async def auth_headers(client) -> dict:
    body = await register(client)
    return {"Authorization": f"Bearer {body['token']}"}


@pytest_asyncio.fixture
async def user_id(client, auth_headers) -> str:
    response = await client.get("/api/auth/me", headers=auth_headers)
    return response.json()["id"]


@pytest.fixture
def temp_storage(tmp_path) -> str:
    """A fresh storage directory for file service tests."""
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)
