"""Test fixtures for the partnership dashboard API.

Provides:
- A seeded FakeStreak upstream (BE and NL accounts) behind httpx.MockTransport
- A PipelineService wired to it with both tenant credentials configured
- The FastAPI app with that service on app.state, and an async HTTP client
- Session tokens for BE, NL and disallowed users
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.partnerdash.main import build_pipeline_service, create_app
from src.partnerdash.pipelines.service import PipelineService
from tests.helpers import auth_headers, make_settings
from tests.streak_fakes import FakeStreak, seeded_streak


@pytest.fixture
def streak() -> FakeStreak:
    return seeded_streak()


@pytest.fixture
def service(streak) -> PipelineService:
    return build_pipeline_service(make_settings(), transport=streak.transport())


@pytest.fixture
def app(service):
    application = create_app()
    application.state.pipeline_service = service
    return application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing the API."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def be_headers() -> dict[str, str]:
    return auth_headers("ann@techorama.be", first_name="Ann")


@pytest.fixture
def nl_headers() -> dict[str, str]:
    return auth_headers("piet@techorama.nl", sub="user-2")
