"""In-memory resource provider.

Resources live in a dictionary owned by the provider instance. The resource
type is taken from the URN (``urn:tether:<stack>::<project>::<type>::<name>``)
and selects a schema describing defaults, required and immutable inputs.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Any

import structlog

from tether import __version__
from tether.core.errors import ProviderError, ResourceNotFoundError, ValidationError
from tether.protocol import (
    CheckFailure,
    CheckResponse,
    CreateResponse,
    DiffChanges,
    DiffResponse,
    InvokeResponse,
    PropertyMap,
    ReadResponse,
    ResourceProvider,
    UpdateResponse,
    copy_properties,
    property_diff,
    provider_function,
)
from tether.providers.registry import register_provider

logger = structlog.get_logger()

GENERIC_TYPE = "memory:index:Resource"


@dataclass(frozen=True)
class ResourceSchema:
    """Input rules for one resource type."""

    token: str
    required: frozenset[str] = frozenset()
    immutable: frozenset[str] = frozenset()
    defaults: dict[str, Any] = field(default_factory=dict)
    choices: dict[str, frozenset[str]] = field(default_factory=dict)
    unique: str | None = None
    delete_before_replace: bool = False


SCHEMAS: dict[str, ResourceSchema] = {
    schema.token: schema
    for schema in (
        ResourceSchema(
            token="memory:index:Instance",
            required=frozenset({"size"}),
            immutable=frozenset({"size"}),
            choices={"size": frozenset({"small", "medium", "large"})},
        ),
        # Bucket names are global, so a renamed bucket cannot coexist with
        # its replacement.
        ResourceSchema(
            token="memory:index:Bucket",
            required=frozenset({"name"}),
            immutable=frozenset({"name"}),
            defaults={"versioning": False},
            unique="name",
            delete_before_replace=True,
        ),
        ResourceSchema(token=GENERIC_TYPE),
    )
}


def resource_type(urn: str) -> str:
    """Type token of a URN, or the generic type when the URN has none."""
    parts = urn.split("::")
    if len(parts) >= 3 and parts[-2]:
        return parts[-2]
    return GENERIC_TYPE


def schema_for(urn: str) -> ResourceSchema:
    return SCHEMAS.get(resource_type(urn), SCHEMAS[GENERIC_TYPE])


@dataclass
class StoredResource:
    urn: str
    type: str
    inputs: PropertyMap
    outputs: PropertyMap

    def state(self) -> PropertyMap:
        return copy_properties({**self.inputs, **self.outputs})


class MemoryProvider(ResourceProvider):
    """Provider whose backing system is a dictionary."""

    name = "memory"
    version = __version__
    required_config = {"region": "Region in which resources are created"}

    def __init__(self, *, id_prefix: str = "r") -> None:
        super().__init__()
        self._id_prefix = id_prefix
        self._ids = itertools.count(1)
        self._generation = itertools.count(1)
        self._resources: dict[str, StoredResource] = {}

    @property
    def region(self) -> str:
        return self.config.get("region", "")

    def resources(self) -> dict[str, StoredResource]:
        return dict(self._resources)

    async def check(self, urn: str, olds: PropertyMap, news: PropertyMap) -> CheckResponse:
        schema = schema_for(urn)
        failures = []
        for prop in sorted(schema.required):
            if news.get(prop) in (None, ""):
                failures.append(
                    CheckFailure(property=prop, reason=f"missing required property '{prop}'")
                )
        for prop, allowed in sorted(schema.choices.items()):
            value = news.get(prop)
            if value is not None and (not isinstance(value, str) or value not in allowed):
                choices = ", ".join(sorted(allowed))
                failures.append(
                    CheckFailure(property=prop, reason=f"'{value}' is not one of: {choices}")
                )
        unique = news.get(schema.unique) if schema.unique else None
        if unique is not None and not isinstance(unique, str):
            failures.append(CheckFailure(property=schema.unique, reason="must be a string"))

        # Only fill in what the program left out so the user's values keep
        # their original representation.
        inputs = copy_properties(news)
        for prop, default in schema.defaults.items():
            inputs.setdefault(prop, default)
        return CheckResponse(inputs=inputs, failures=failures)

    async def diff(
        self, resource_id: str, urn: str, olds: PropertyMap, news: PropertyMap
    ) -> DiffResponse:
        schema = schema_for(urn)
        if not resource_id:
            return DiffResponse(changes=DiffChanges.SOME)

        changed = property_diff(olds, news)
        if not changed:
            return DiffResponse(changes=DiffChanges.NONE, stables=sorted(schema.immutable))

        replaces = sorted(prop for prop in changed & schema.immutable if prop in news)
        return DiffResponse(
            changes=DiffChanges.SOME,
            replaces=replaces,
            stables=sorted(schema.immutable - changed),
            delete_before_replace=bool(replaces) and schema.delete_before_replace,
        )

    async def create(self, urn: str, properties: PropertyMap) -> CreateResponse:
        schema = schema_for(urn)
        self._ensure_unique(schema, properties)

        # Nothing is stored until every output has been computed.
        resource_id = f"{self._id_prefix}-{next(self._ids)}"
        outputs: PropertyMap = {
            "selfLink": f"memory://{self.region}/{resource_type(urn)}/{resource_id}",
            "region": self.region,
            "generation": next(self._generation),
        }
        self._resources[resource_id] = StoredResource(
            urn=urn, type=schema.token, inputs=copy_properties(properties), outputs=outputs
        )
        logger.info("memory_resource_created", urn=urn, id=resource_id)
        return CreateResponse(id=resource_id, properties=outputs)

    async def read(self, resource_id: str, urn: str, properties: PropertyMap) -> ReadResponse:
        if not resource_id:
            resource_id = self._find(schema_for(urn), properties) or ""
        stored = self._resources.get(resource_id) if resource_id else None
        if stored is None:
            return ReadResponse(id="")
        return ReadResponse(id=resource_id, properties=stored.state())

    async def update(
        self, resource_id: str, urn: str, olds: PropertyMap, news: PropertyMap
    ) -> UpdateResponse:
        stored = self._resources.get(resource_id)
        if stored is None:
            raise ResourceNotFoundError(resource_id)
        schema = schema_for(urn)
        immutable_changes = sorted(property_diff(stored.inputs, news) & schema.immutable)
        if immutable_changes:
            raise ValidationError(
                f"cannot change {', '.join(immutable_changes)} in place; replace the resource",
                {"id": resource_id},
            )

        outputs = dict(stored.outputs, generation=next(self._generation))
        self._resources[resource_id] = StoredResource(
            urn=urn, type=stored.type, inputs=copy_properties(news), outputs=outputs
        )
        logger.info("memory_resource_updated", urn=urn, id=resource_id)
        return UpdateResponse(properties=outputs)

    async def delete(self, resource_id: str, urn: str, properties: PropertyMap) -> None:
        if self._resources.pop(resource_id, None) is None:
            raise ResourceNotFoundError(resource_id)
        logger.info("memory_resource_deleted", urn=urn, id=resource_id)

    @provider_function("memory:index:getRegion")
    async def get_region(self, args: PropertyMap) -> PropertyMap:
        return {"region": self.region}

    @provider_function("memory:index:lookup")
    async def lookup(self, args: PropertyMap) -> InvokeResponse:
        name = args.get("name")
        if not isinstance(name, str) or not name:
            return InvokeResponse(
                failures=[CheckFailure(property="name", reason="a resource name is required")]
            )
        for resource_id, stored in self._resources.items():
            if stored.inputs.get("name") == name:
                return InvokeResponse(return_={"id": resource_id, "urn": stored.urn})
        return InvokeResponse(return_={})

    def _find(self, schema: ResourceSchema, properties: PropertyMap) -> str | None:
        key = schema.unique or "name"
        value = properties.get(key)
        if value is None:
            return None
        for resource_id, stored in self._resources.items():
            if stored.type == schema.token and stored.inputs.get(key) == value:
                return resource_id
        return None

    def _ensure_unique(self, schema: ResourceSchema, properties: PropertyMap) -> None:
        if schema.unique is None:
            return
        existing = self._find(schema, properties)
        if existing is not None:
            raise ProviderError(
                f"{schema.token} {schema.unique} '{properties[schema.unique]}' is already in use",
                {"existing_id": existing},
            )


register_provider(
    MemoryProvider.name,
    MemoryProvider,
    version=MemoryProvider.version,
    description="In-memory provider for local runs and tests",
)

__all__ = ["MemoryProvider", "ResourceSchema", "SCHEMAS", "resource_type"]
