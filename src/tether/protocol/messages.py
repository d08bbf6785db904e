"""Request and response messages of the ResourceProvider service.

Field names on the wire follow the protocol's camelCase spelling; Python code
uses the snake_case attribute names. Property bags are validated and copied
on construction so a message never aliases a caller's mutable data.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any

import pydantic
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator

from tether.core.errors import PropertyError
from tether.protocol.properties import copy_properties


class Message(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def _bag(value: Any) -> dict[str, Any]:
    try:
        return copy_properties(value)
    except PropertyError as e:
        raise ValueError(e.message) from e


Bag = Annotated[dict[str, Any], BeforeValidator(_bag)]


class Empty(Message):
    pass


class CheckFailure(Message):
    """One validation failure for a single named property."""

    property: str
    reason: str


class MissingKey(Message):
    name: str
    description: str = ""


class ConfigureErrorMissingKeys(Message):
    """Error detail attached to a failed Configure."""

    missing_keys: list[MissingKey] = Field(default_factory=list, alias="missingKeys")


class ConfigureRequest(Message):
    variables: dict[str, str] = Field(default_factory=dict)


class InvokeRequest(Message):
    tok: str
    args: Bag = Field(default_factory=dict)


class InvokeResponse(Message):
    return_: Bag = Field(default_factory=dict, alias="return")
    failures: list[CheckFailure] = Field(default_factory=list)


class CheckRequest(Message):
    urn: str
    olds: Bag = Field(default_factory=dict)
    news: Bag = Field(default_factory=dict)


class CheckResponse(Message):
    inputs: Bag = Field(default_factory=dict)
    failures: list[CheckFailure] = Field(default_factory=list)


class DiffChanges(StrEnum):
    """Whether a diff found changes. UNKNOWN is the legacy, pre-diff behavior."""

    UNKNOWN = "DIFF_UNKNOWN"
    NONE = "DIFF_NONE"
    SOME = "DIFF_SOME"

    @property
    def requires_update(self) -> bool:
        # Unknown is conservatively treated as a change
        return self is not DiffChanges.NONE


class DiffRequest(Message):
    id: str = ""
    urn: str
    olds: Bag = Field(default_factory=dict)
    news: Bag = Field(default_factory=dict)


class DiffResponse(Message):
    replaces: list[str] = Field(default_factory=list)
    stables: list[str] = Field(default_factory=list)
    delete_before_replace: bool = Field(default=False, alias="deleteBeforeReplace")
    changes: DiffChanges = DiffChanges.UNKNOWN

    @model_validator(mode="after")
    def _no_replacements_without_changes(self) -> "DiffResponse":
        if self.changes is DiffChanges.NONE and self.replaces:
            raise ValueError("a diff with no changes cannot require replacement")
        return self

    @property
    def requires_replacement(self) -> bool:
        return self.changes.requires_update and bool(self.replaces)


class CreateRequest(Message):
    urn: str
    properties: Bag = Field(default_factory=dict)


class CreateResponse(Message):
    id: str
    properties: Bag = Field(default_factory=dict)


class ReadRequest(Message):
    id: str
    urn: str
    properties: Bag = Field(default_factory=dict)


class ReadResponse(Message):
    id: str = ""
    properties: Bag = Field(default_factory=dict)

    @property
    def exists(self) -> bool:
        return bool(self.id)


class UpdateRequest(Message):
    id: str
    urn: str
    olds: Bag = Field(default_factory=dict)
    news: Bag = Field(default_factory=dict)


class UpdateResponse(Message):
    properties: Bag = Field(default_factory=dict)


class DeleteRequest(Message):
    id: str
    urn: str
    properties: Bag = Field(default_factory=dict)


class PluginInfo(Message):
    version: str
    name: str | None = None


def failures_from_validation_error(exc: pydantic.ValidationError) -> list[CheckFailure]:
    """Turn a model conversion error into per-property CheckFailures."""
    failures = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "<root>"
        failures.append(CheckFailure(property=location, reason=error["msg"]))
    return failures
