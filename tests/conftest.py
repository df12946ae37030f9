"""
Pytest Configuration and Shared Test Fixtures

This module provides pytest configuration and reusable fixtures for all tests.
All fixtures defined here are automatically available to all test files.

No test needs a running Redis: the distributed tier is exercised through
the in-memory FakeRedis from tests/test_fixtures.
"""

import os
import sys

import pytest
from httpx import ASGITransport, AsyncClient

# Add project root to sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from tests.test_fixtures import CacheTestFactory, FakeClock, FakeRedis  # noqa: E402

# pytest-asyncio runs in auto mode (pyproject.toml), so async fixtures and
# tests need no extra decorators beyond @pytest.mark.asyncio for readability


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def test_settings():
    """
    Settings for an isolated, local-only test application.

    `.env` is ignored so a developer's local file cannot leak into tests.
    """
    from src.core.config.settings import Settings

    return Settings(
        _env_file=None,
        ENVIRONMENT="test",
        REDIS_URL=None,
        LOG_LEVEL="WARNING",
        LOG_FORMAT="console",
    )


# ============================================================================
# Cache Fixtures
# ============================================================================


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def local_cache(fake_clock):
    """Local cache on a controllable clock."""
    from src.infrastructure.cache.local_cache import LocalCache

    return LocalCache(max_keys=100, default_ttl=300, check_period=60, clock=fake_clock)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
async def redis_client(fake_redis):
    """RedisClient connected to the in-memory fake."""
    client = CacheTestFactory.redis_client(fake_redis)
    await client.connect()
    yield client
    await client.disconnect()


@pytest.fixture
async def cache_manager(local_cache, redis_client):
    """Two-tier cache manager: fake-clock L1 + fake Redis L2."""
    return CacheTestFactory.cache_manager(local=local_cache, distributed=redis_client)


# ============================================================================
# Application Fixtures
# ============================================================================


@pytest.fixture
async def app(test_settings):
    """
    Fully started application (lifespan run), local-only caching.

    Yields the FastAPI instance; services live on app.state.
    """
    from src.application.app import create_app

    application = create_app(test_settings)
    async with application.router.lifespan_context(application):
        yield application


@pytest.fixture
async def client(app):
    """Async HTTP client bound to the started application."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client
