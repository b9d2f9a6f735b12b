"""Root conftest — shared settings, in-memory store, and ASGI test client.

Invariants:
    - Tests never touch a real Redis: every app gets an InMemoryRecordStore
    - Every test gets a fresh store and a fresh app (no shared rate-limit counters)
    - ASGITransport does not run the lifespan, so the store is injected via create_app
"""

import os

import pytest
from httpx import ASGITransport, AsyncClient

# Ensure tests don't accidentally pick up a real deployment's configuration
os.environ.setdefault("API_SHARED_SECRET", "test-shared-secret")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")

from userstore.config import Settings  # noqa: E402
from userstore.main import create_app  # noqa: E402
from tests.fakes import InMemoryRecordStore  # noqa: E402

TEST_SECRET = "test-shared-secret"


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        api_shared_secret=TEST_SECRET,
        rate_limit_requests=1000,
        rate_limit_window_seconds=60,
        log_format="text",
    )


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def app(settings, store):
    return create_app(settings, record_store=store)


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {TEST_SECRET}"}


@pytest.fixture
async def client(app):
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c
