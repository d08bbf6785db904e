"""Engine-side client for provider services."""

from tether.client.client import (
    MUTATING_METHODS,
    RETRYABLE_METHODS,
    ResourceProviderClient,
    is_retryable_status,
)

__all__ = [
    "MUTATING_METHODS",
    "RETRYABLE_METHODS",
    "ResourceProviderClient",
    "is_retryable_status",
]
