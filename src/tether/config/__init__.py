"""
Tether configuration.

- Pydantic-based settings (environment variables, .env files)
- YAML provider configuration files passed to Configure
"""

from tether.config.loader import flatten_variables, load_provider_variables
from tether.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "load_provider_variables",
    "flatten_variables",
]
