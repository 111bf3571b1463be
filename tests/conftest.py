# tests/conftest.py
import os

# keep the app on the in-memory store and off the hourly loop
os.environ.setdefault("USE_MONGO", "false")
os.environ.setdefault("SCAN_ENABLED", "false")

import pytest
from httpx import AsyncClient, ASGITransport
from asgi_lifespan import LifespanManager

from factories import RecordingGateway
from petmatch import deps
from petmatch.main import app
from petmatch.repos.inmemory import InMemoryRepo


@pytest.fixture(scope="session")
def anyio_backend():
    # keep AnyIO on asyncio for the whole test session
    return "asyncio"


@pytest.fixture
def repo():
    return InMemoryRepo()


@pytest.fixture
def gateway():
    return RecordingGateway()


@pytest.fixture
async def test_client():
    deps.reset()
    async with LifespanManager(app):
        transport = ASGITransport(app=app, raise_app_exceptions=True)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    deps.reset()
