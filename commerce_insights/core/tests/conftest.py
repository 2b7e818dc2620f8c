"""Fixtures for core infrastructure tests."""

import pytest
from httpx import ASGITransport, AsyncClient

from commerce_insights.core.config import get_settings
from commerce_insights.main import app


@pytest.fixture(autouse=True)
def fresh_settings():
    """Re-read settings per test so monkeypatched env vars take effect."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
async def client():
    """HTTP client against the real app, without a lifespan."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://analytics.test") as http:
        yield http
