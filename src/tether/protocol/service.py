"""
Base class for resource providers.

A provider is a single logical service for one resource package. Subclasses
implement create(), read(), update() and delete(); check() and diff() have
conservative defaults, and invoke() dispatches to methods marked with
@provider_function.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Mapping

from tether.core.errors import MissingConfigKeysError, UnknownFunctionError
from tether.protocol.messages import (
    CheckResponse,
    CreateResponse,
    DiffChanges,
    DiffResponse,
    InvokeResponse,
    PluginInfo,
    ReadResponse,
    UpdateResponse,
)
from tether.protocol.properties import PropertyMap

ProviderFunction = Callable[..., Awaitable[InvokeResponse | Mapping[str, Any]]]


def provider_function(token: str) -> Callable[[ProviderFunction], ProviderFunction]:
    """Export a provider method to Invoke under the given function token."""

    def decorator(func: ProviderFunction) -> ProviderFunction:
        func.__provider_function__ = token  # type: ignore[attr-defined]
        return func

    return decorator


class ResourceProvider(ABC):
    """
    Abstract base class for resource providers.

    Class attributes:
    - name / version: reported by get_plugin_info()
    - required_config: configuration key -> human readable description;
      configure() fails with the keys that were not supplied
    """

    name: str = "provider"
    version: str = "0.0.0"
    required_config: dict[str, str] = {}

    _functions: dict[str, str] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        functions = dict(cls._functions)
        for attr, value in vars(cls).items():
            token = getattr(value, "__provider_function__", None)
            if token:
                functions[token] = attr
        cls._functions = functions

    def __init__(self) -> None:
        self._config: dict[str, str] | None = None

    @property
    def configured(self) -> bool:
        return self._config is not None

    @property
    def config(self) -> dict[str, str]:
        return dict(self._config or {})

    @property
    def functions(self) -> list[str]:
        return sorted(self._functions)

    async def configure(self, variables: Mapping[str, str]) -> None:
        """Validate and cache configuration for the lifetime of this provider."""
        missing = [
            {"name": key, "description": description}
            for key, description in self.required_config.items()
            if not variables.get(key)
        ]
        if missing:
            raise MissingConfigKeysError(missing)
        config = dict(variables)
        await self.on_configure(config)
        self._config = config

    async def on_configure(self, config: dict[str, str]) -> None:
        """Hook for providers that build clients from configuration."""

    async def check(self, urn: str, olds: PropertyMap, news: PropertyMap) -> CheckResponse:
        return CheckResponse(inputs=news)

    async def diff(
        self, resource_id: str, urn: str, olds: PropertyMap, news: PropertyMap
    ) -> DiffResponse:
        return DiffResponse(changes=DiffChanges.UNKNOWN)

    @abstractmethod
    async def create(self, urn: str, properties: PropertyMap) -> CreateResponse:
        """
        Create the resource. Must be all-or-nothing: if this raises, the
        backing object must not exist.
        """

    @abstractmethod
    async def read(self, resource_id: str, urn: str, properties: PropertyMap) -> ReadResponse:
        """
        Read live state. Return an empty id, or raise ResourceNotFoundError,
        when the object no longer exists.
        """

    @abstractmethod
    async def update(
        self, resource_id: str, urn: str, olds: PropertyMap, news: PropertyMap
    ) -> UpdateResponse:
        """Apply the delta between olds and news in place."""

    @abstractmethod
    async def delete(self, resource_id: str, urn: str, properties: PropertyMap) -> None:
        """
        Delete the resource. If this raises, the resource is assumed to
        still exist. Raising ResourceNotFoundError counts as success.
        """

    async def invoke(self, tok: str, args: PropertyMap) -> InvokeResponse:
        attr = self._functions.get(tok)
        if attr is None:
            raise UnknownFunctionError(tok)
        result = await getattr(self, attr)(args)
        if isinstance(result, InvokeResponse):
            return result
        return InvokeResponse(return_=result)

    async def get_plugin_info(self) -> PluginInfo:
        return PluginInfo(version=self.version, name=self.name)
