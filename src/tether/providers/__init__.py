"""Provider utilities and built-in registrations."""

# Import built-in providers for side effects (registration)
from tether.providers import memory as _memory  # noqa: F401
from tether.providers.registry import (
    create_provider,
    get_provider_spec,
    list_providers,
    register_provider,
)

__all__ = [
    "create_provider",
    "get_provider_spec",
    "list_providers",
    "register_provider",
]
