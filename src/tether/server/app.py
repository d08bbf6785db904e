from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from tether import __version__
from tether.config import Settings, get_settings, load_provider_variables
from tether.core.errors import TetherError
from tether.logging import configure_logging
from tether.protocol import ProviderDispatcher, ResourceProvider
from tether.providers import create_provider
from tether.server.errors import request_validation_handler, tether_error_handler
from tether.server.routes import health, rpc

logger = structlog.get_logger()


def create_app(
    provider: ResourceProvider | None = None,
    settings: Settings | None = None,
    *,
    configure_logs: bool = True,
) -> FastAPI:
    """Build the provider service.

    When ``settings.provider_config_path`` is set, the provider is configured
    from that file at startup; otherwise the engine is expected to call
    Configure before any resource method.
    """
    settings = settings or get_settings()
    provider = provider or create_provider(settings.provider)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if configure_logs:
            configure_logging(settings.log_level, settings.log_format)
        if settings.provider_config_path:
            variables = load_provider_variables(settings.provider_config_path)
            await provider.configure(variables)
            logger.info("provider_configured_from_file", path=settings.provider_config_path)
        logger.info("provider_service_started", provider=provider.name, version=provider.version)
        yield

    app = FastAPI(
        title="Tether Resource Provider",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.dispatcher = ProviderDispatcher(provider)

    app.add_exception_handler(TetherError, tether_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(
        RequestValidationError, request_validation_handler  # type: ignore[arg-type]
    )

    app.include_router(rpc.router, prefix=settings.rpc_prefix, tags=["rpc"])
    app.include_router(health.router, tags=["health"])
    return app
