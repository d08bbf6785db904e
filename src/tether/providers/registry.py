"""In-process registry of resource provider factories.

``tether serve --provider NAME`` and the ``providers`` commands look providers
up here. Built-in providers register themselves when :mod:`tether.providers`
is imported.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from tether.core.errors import ConfigurationError
from tether.protocol.service import ResourceProvider

ProviderFactory = Callable[..., ResourceProvider]


@dataclass(frozen=True)
class ProviderSpec:
    """A registered provider: how to build it and what it reports."""

    name: str
    factory: ProviderFactory
    version: str | None = None
    description: str | None = None


class ProviderRegistry:
    def __init__(self) -> None:
        self._providers: Dict[str, ProviderSpec] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._providers

    def register(
        self,
        name: str,
        factory: ProviderFactory,
        *,
        version: str | None = None,
        description: str | None = None,
    ) -> ProviderSpec:
        """Register ``factory`` under ``name``; a later registration wins."""
        if not name:
            raise ValueError("Provider name is required")
        spec = ProviderSpec(name=name, factory=factory, version=version, description=description)
        self._providers[name] = spec
        return spec

    def get(self, name: str) -> ProviderSpec | None:
        return self._providers.get(name)

    def create(self, name: str, **kwargs: Any) -> ResourceProvider:
        spec = self._providers.get(name)
        if spec is None:
            available = ", ".join(sorted(self._providers)) or "(none)"
            raise ConfigurationError(
                f"Provider '{name}' is not registered (available: {available})",
                {"provider": name},
            )
        provider = spec.factory(**kwargs)
        if not isinstance(provider, ResourceProvider):
            raise ConfigurationError(
                f"Factory for provider '{name}' returned {type(provider).__name__}, "
                "not a ResourceProvider",
                {"provider": name},
            )
        return provider

    def list(self) -> List[ProviderSpec]:
        return sorted(self._providers.values(), key=lambda spec: spec.name)


provider_registry = ProviderRegistry()


def register_provider(
    name: str,
    factory: ProviderFactory,
    *,
    version: str | None = None,
    description: str | None = None,
) -> ProviderSpec:
    return provider_registry.register(name, factory, version=version, description=description)


def create_provider(name: str, **kwargs: Any) -> ResourceProvider:
    return provider_registry.create(name, **kwargs)


def get_provider_spec(name: str) -> ProviderSpec | None:
    return provider_registry.get(name)


def list_providers() -> List[ProviderSpec]:
    return provider_registry.list()
