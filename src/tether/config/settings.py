"""
Application settings using Pydantic.

Provides environment-based configuration loading with TETHER_ prefix.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # Server
    host: str = "127.0.0.1"
    port: int = 50051
    rpc_prefix: str = "/tether.ResourceProvider"
    provider: str = "memory"
    provider_config_path: str | None = None

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    # RPC client settings
    rpc_timeout: float = 30.0
    rpc_max_retries: int = 3
    rpc_backoff_min: float = 1.0
    rpc_backoff_max: float = 30.0
    circuit_failure_threshold: int = 5
    circuit_recovery_timeout: int = 60

    # Provider lock file
    lock_path: str = "providers.lock"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "TETHER_"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
