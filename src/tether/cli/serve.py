from __future__ import annotations

import uvicorn

from tether.config import get_settings
from tether.core.errors import main_with_error_handling
from tether.logging import bind_context, configure_logging
from tether.providers import create_provider
from tether.server import create_app


@main_with_error_handling()
def serve_command(
    provider: str | None = None,
    host: str | None = None,
    port: int | None = None,
    config_path: str | None = None,
    log_level: str | None = None,
    log_format: str | None = None,
) -> int:
    """Run a provider as an HTTP/JSON ResourceProvider service."""
    updates = {
        key: value
        for key, value in {
            "provider": provider,
            "host": host,
            "port": port,
            "provider_config_path": config_path,
            "log_level": log_level,
            "log_format": log_format,
        }.items()
        if value is not None
    }
    settings = get_settings().model_copy(update=updates)
    configure_logging(settings.log_level, settings.log_format)
    log = bind_context(provider=settings.provider, host=settings.host, port=settings.port)

    app = create_app(create_provider(settings.provider), settings, configure_logs=False)
    log.info("provider_service_starting", rpc_prefix=settings.rpc_prefix)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
    return 0
