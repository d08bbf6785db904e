"""Drive one resource instance through Check, Diff and the decided action.

The stepper only orders calls for a single resource. Deciding which
resources to step, and in what order, belongs to the caller.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol

import structlog

from tether.core.errors import CheckFailedError, ProviderError, TetherError
from tether.engine.models import RefreshResult, ResourceState, StepOp, StepResult
from tether.protocol import (
    CheckResponse,
    CreateResponse,
    DiffChanges,
    DiffResponse,
    PluginInfo,
    ReadResponse,
    UpdateResponse,
    property_diff,
)
from tether.providers.lock import ProviderLock

logger = structlog.get_logger()


class ProviderClient(Protocol):
    """The calls the stepper needs; ResourceProviderClient satisfies it."""

    async def configure(self, variables: Mapping[str, str]) -> None:
        ...

    async def check(
        self, urn: str, olds: Mapping[str, Any] | None, news: Mapping[str, Any] | None
    ) -> CheckResponse:
        ...

    async def diff(
        self,
        resource_id: str,
        urn: str,
        olds: Mapping[str, Any] | None,
        news: Mapping[str, Any] | None,
    ) -> DiffResponse:
        ...

    async def create(self, urn: str, properties: Mapping[str, Any] | None) -> CreateResponse:
        ...

    async def read(
        self, resource_id: str, urn: str, properties: Mapping[str, Any] | None = None
    ) -> ReadResponse:
        ...

    async def update(
        self,
        resource_id: str,
        urn: str,
        olds: Mapping[str, Any] | None,
        news: Mapping[str, Any] | None,
    ) -> UpdateResponse:
        ...

    async def delete(
        self, resource_id: str, urn: str, properties: Mapping[str, Any] | None = None
    ) -> None:
        ...

    async def get_plugin_info(self) -> PluginInfo:
        ...


class ReplacementError(ProviderError):
    """Replacement failed after the old resource had already been deleted."""

    def __init__(self, urn: str, message: str):
        super().__init__(message, {"urn": urn})
        self.urn = urn


async def connect(
    client: ProviderClient,
    name: str,
    variables: Mapping[str, str],
    *,
    lock: ProviderLock | None = None,
) -> PluginInfo:
    """Check the provider version against the lock, then Configure it once."""
    info = await client.get_plugin_info()
    if lock is not None:
        lock.check_compatible(name, info)
    await client.configure(variables)
    logger.info("provider_connected", provider=name, version=info.version)
    return info


class ResourceStepper:
    """Applies the protocol's stage order to one resource at a time."""

    def __init__(self, client: ProviderClient) -> None:
        self._client = client

    async def step(
        self,
        urn: str,
        news: Mapping[str, Any],
        prior: ResourceState | None = None,
    ) -> StepResult:
        """Converge the resource named ``urn`` toward ``news``.

        ``prior`` is the recorded state, or None when the resource has never
        been created. Raises CheckFailedError without touching the resource
        when the provider rejects the inputs.
        """
        log = logger.bind(urn=urn, id=prior.id if prior else "")
        calls = ["Check"]
        checked = await self._client.check(urn, prior.inputs if prior else {}, news)
        if checked.failures:
            log.warning("step_check_failed", failures=len(checked.failures))
            raise CheckFailedError(urn, checked.failures)
        inputs = checked.inputs

        if prior is None:
            created = await self._client.create(urn, inputs)
            calls.append("Create")
            log.info("step_created", id=created.id)
            return StepResult(
                op=StepOp.create,
                state=ResourceState(urn, created.id, inputs, created.properties),
                calls=calls,
            )

        diff = await self._client.diff(prior.id, urn, prior.inputs, inputs)
        calls.append("Diff")
        if diff.changes is DiffChanges.NONE:
            log.debug("step_unchanged")
            return StepResult(
                op=StepOp.same,
                state=ResourceState(urn, prior.id, inputs, prior.outputs),
                diff=diff,
                calls=calls,
            )
        if diff.changes is DiffChanges.UNKNOWN:
            log.info("step_diff_unknown_assuming_changes")

        if not diff.replaces:
            updated = await self._client.update(prior.id, urn, prior.inputs, inputs)
            calls.append("Update")
            log.info("step_updated")
            return StepResult(
                op=StepOp.update,
                state=ResourceState(urn, prior.id, inputs, updated.properties),
                diff=diff,
                calls=calls,
            )

        log.info(
            "step_replacing",
            replaces=diff.replaces,
            delete_before_replace=diff.delete_before_replace,
        )
        if diff.delete_before_replace:
            return await self._delete_then_create(urn, inputs, prior, diff, calls)
        return await self._create_then_delete(urn, inputs, prior, diff, calls)

    async def destroy(self, state: ResourceState) -> StepResult:
        """Delete the resource. On failure the resource is assumed to still exist."""
        await self._client.delete(state.id, state.urn, state.properties)
        logger.info("step_deleted", urn=state.urn, id=state.id)
        return StepResult(op=StepOp.delete, state=None, calls=["Delete"])

    async def refresh(self, state: ResourceState) -> RefreshResult:
        """Read live state and report which properties drifted.

        A resource the provider no longer finds is reported as deleted.
        """
        read = await self._client.read(state.id, state.urn, state.properties)
        if not read.exists:
            logger.info("refresh_resource_gone", urn=state.urn, id=state.id)
            return RefreshResult(state=None)

        refreshed = ResourceState(state.urn, read.id, state.inputs, read.properties)
        drift = property_diff(state.properties, refreshed.properties)
        if drift:
            logger.info("refresh_drift_detected", urn=state.urn, id=read.id, drift=sorted(drift))
        return RefreshResult(state=refreshed, drift=drift)

    async def import_resource(
        self, urn: str, resource_id: str, properties: Mapping[str, Any] | None = None
    ) -> ResourceState | None:
        """Adopt an existing live object by reading it."""
        read = await self._client.read(resource_id, urn, properties)
        if not read.exists:
            return None
        return ResourceState(urn, read.id, dict(read.properties), dict(read.properties))

    async def _delete_then_create(
        self,
        urn: str,
        inputs: dict[str, Any],
        prior: ResourceState,
        diff: DiffResponse,
        calls: list[str],
    ) -> StepResult:
        await self._client.delete(prior.id, urn, prior.properties)
        calls.append("Delete")
        try:
            created = await self._client.create(urn, inputs)
        except TetherError as exc:
            logger.error("step_replacement_create_failed", urn=urn, old_id=prior.id)
            raise ReplacementError(
                urn, f"{urn} was deleted for replacement but its replacement failed: {exc}"
            ) from exc
        calls.append("Create")
        return StepResult(
            op=StepOp.replace,
            state=ResourceState(urn, created.id, inputs, created.properties),
            diff=diff,
            calls=calls,
        )

    async def _create_then_delete(
        self,
        urn: str,
        inputs: dict[str, Any],
        prior: ResourceState,
        diff: DiffResponse,
        calls: list[str],
    ) -> StepResult:
        created = await self._client.create(urn, inputs)
        calls.append("Create")
        result = StepResult(
            op=StepOp.replace,
            state=ResourceState(urn, created.id, inputs, created.properties),
            diff=diff,
            calls=calls,
        )
        try:
            await self._client.delete(prior.id, urn, prior.properties)
        except TetherError as exc:
            logger.warning(
                "step_replaced_resource_not_deleted", urn=urn, old_id=prior.id, error=str(exc)
            )
            result.pending_delete = prior
            return result
        calls.append("Delete")
        return result
