"""Root test configuration."""

import logging

import httpx
import pytest
import pytest_asyncio
import structlog
from tether.client import ResourceProviderClient
from tether.config import Settings
from tether.providers.memory import MemoryProvider
from tether.server import create_app


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(provider="memory", provider_config_path=None, rpc_backoff_min=0)


@pytest.fixture
def provider() -> MemoryProvider:
    return MemoryProvider()


@pytest_asyncio.fixture
async def configured_provider(provider: MemoryProvider) -> MemoryProvider:
    await provider.configure({"region": "eu-west-1"})
    return provider


@pytest.fixture
def app(configured_provider, settings):
    return create_app(configured_provider, settings, configure_logs=False)


@pytest_asyncio.fixture
async def http_client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def rpc_client(http_client, settings):
    client = ResourceProviderClient(
        rpc_prefix=settings.rpc_prefix,
        backoff_min=0,
        http_client=http_client,
    )
    yield client
    await client.aclose()
