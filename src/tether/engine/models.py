"""Result types for driving a single resource through the protocol."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from tether.protocol import DiffResponse, PropertyMap, copy_properties


class StepOp(StrEnum):
    """What a step did to the live resource."""

    same = "same"
    create = "create"
    update = "update"
    replace = "replace"
    delete = "delete"


@dataclass
class ResourceState:
    """Recorded state of one resource instance."""

    urn: str
    id: str
    inputs: PropertyMap = field(default_factory=dict)
    outputs: PropertyMap = field(default_factory=dict)

    @property
    def properties(self) -> PropertyMap:
        """Inputs overlaid with provider-computed outputs."""
        return copy_properties({**self.inputs, **self.outputs})


@dataclass
class StepResult:
    op: StepOp
    state: ResourceState | None
    diff: DiffResponse | None = None
    calls: list[str] = field(default_factory=list)
    # Old resource left behind when create-before-delete could not delete it
    pending_delete: ResourceState | None = None

    @property
    def changed(self) -> bool:
        return self.op is not StepOp.same


@dataclass
class RefreshResult:
    state: ResourceState | None
    drift: set[str] = field(default_factory=set)

    @property
    def deleted(self) -> bool:
        return self.state is None

    @property
    def has_drift(self) -> bool:
        return self.deleted or bool(self.drift)
