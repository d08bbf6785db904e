"""Tests for driving resources through the protocol stages."""

import asyncio

import pytest
from tether.core.errors import (
    CheckFailedError,
    PermanentRPCError,
    ProviderVersionMismatch,
    TransientRPCError,
)
from tether.engine import ReplacementError, ResourceState, ResourceStepper, StepOp, connect
from tether.protocol import DiffChanges, DiffResponse
from tether.providers.lock import ProviderLock

INSTANCE_URN = "urn:tether:dev::demo::memory:index:Instance::web"
BUCKET_URN = "urn:tether:dev::demo::memory:index:Bucket::assets"


class RecordingClient:
    """Calls a MemoryProvider directly and records every method issued."""

    def __init__(self, provider):
        self.provider = provider
        self.calls = []
        self.diff_override = None
        self.failures = {}

    def _record(self, method):
        self.calls.append(method)
        if method in self.failures:
            raise self.failures[method]

    async def configure(self, variables):
        self._record("Configure")
        await self.provider.configure(variables)

    async def get_plugin_info(self):
        self._record("GetPluginInfo")
        return await self.provider.get_plugin_info()

    async def check(self, urn, olds, news):
        self._record("Check")
        return await self.provider.check(urn, dict(olds or {}), dict(news or {}))

    async def diff(self, resource_id, urn, olds, news):
        self._record("Diff")
        if self.diff_override is not None:
            return self.diff_override
        return await self.provider.diff(resource_id, urn, dict(olds or {}), dict(news or {}))

    async def create(self, urn, properties):
        self._record("Create")
        return await self.provider.create(urn, dict(properties or {}))

    async def read(self, resource_id, urn, properties=None):
        self._record("Read")
        return await self.provider.read(resource_id, urn, dict(properties or {}))

    async def update(self, resource_id, urn, olds, news):
        self._record("Update")
        return await self.provider.update(resource_id, urn, dict(olds or {}), dict(news or {}))

    async def delete(self, resource_id, urn, properties=None):
        self._record("Delete")
        await self.provider.delete(resource_id, urn, dict(properties or {}))


@pytest.fixture
def recording(configured_provider):
    return RecordingClient(configured_provider)


class TestStep:
    """Stage ordering for a single resource."""

    @pytest.mark.asyncio
    async def test_first_step_creates(self, rpc_client):
        result = await ResourceStepper(rpc_client).step(INSTANCE_URN, {"size": "small"})

        assert result.op is StepOp.create
        assert result.calls == ["Check", "Create"]
        assert result.state.id == "r-1"
        assert result.state.inputs == {"size": "small"}
        assert result.state.outputs["region"] == "eu-west-1"

    @pytest.mark.asyncio
    async def test_unchanged_inputs_skip_update(self, recording):
        stepper = ResourceStepper(recording)
        created = await stepper.step(INSTANCE_URN, {"size": "small"})

        result = await stepper.step(INSTANCE_URN, {"size": "small"}, created.state)

        assert result.op is StepOp.same
        assert not result.changed
        assert result.diff.changes is DiffChanges.NONE
        assert "Update" not in recording.calls
        assert result.state.id == created.state.id

    @pytest.mark.asyncio
    async def test_mutable_change_updates_in_place(self, rpc_client):
        stepper = ResourceStepper(rpc_client)
        created = await stepper.step(INSTANCE_URN, {"size": "small"})

        result = await stepper.step(
            INSTANCE_URN, {"size": "small", "label": "web"}, created.state
        )

        assert result.op is StepOp.update
        assert result.calls == ["Check", "Diff", "Update"]
        assert result.state.id == created.state.id
        assert result.state.outputs["generation"] > created.state.outputs["generation"]

    @pytest.mark.asyncio
    async def test_unknown_diff_is_treated_as_change(self, recording):
        stepper = ResourceStepper(recording)
        created = await stepper.step(INSTANCE_URN, {"size": "small"})
        recording.diff_override = DiffResponse(changes=DiffChanges.UNKNOWN)

        result = await stepper.step(INSTANCE_URN, {"size": "small"}, created.state)

        assert result.op is StepOp.update
        assert result.calls[-1] == "Update"

    @pytest.mark.asyncio
    async def test_check_failures_stop_the_step(self, recording):
        with pytest.raises(CheckFailedError) as exc_info:
            await ResourceStepper(recording).step(INSTANCE_URN, {"size": "huge"})

        assert exc_info.value.failures[0].property == "size"
        assert recording.calls == ["Check"]
        assert recording.provider.resources() == {}

    @pytest.mark.asyncio
    async def test_checked_inputs_are_used(self, rpc_client):
        result = await ResourceStepper(rpc_client).step(BUCKET_URN, {"name": "assets"})
        assert result.state.inputs == {"name": "assets", "versioning": False}


class TestReplacement:
    @pytest.mark.asyncio
    async def test_create_before_delete(self, recording):
        stepper = ResourceStepper(recording)
        created = await stepper.step(INSTANCE_URN, {"size": "small"})
        recording.calls.clear()

        result = await stepper.step(INSTANCE_URN, {"size": "large"}, created.state)

        assert result.op is StepOp.replace
        assert recording.calls == ["Check", "Diff", "Create", "Delete"]
        assert result.state.id != created.state.id
        assert list(recording.provider.resources()) == [result.state.id]

    @pytest.mark.asyncio
    async def test_delete_before_replace(self, recording):
        stepper = ResourceStepper(recording)
        created = await stepper.step(BUCKET_URN, {"name": "assets"})
        recording.calls.clear()

        result = await stepper.step(BUCKET_URN, {"name": "static"}, created.state)

        assert result.op is StepOp.replace
        assert result.diff.delete_before_replace
        assert recording.calls == ["Check", "Diff", "Delete", "Create"]
        assert result.state.inputs["name"] == "static"

    @pytest.mark.asyncio
    async def test_old_resource_left_when_delete_fails(self, recording):
        stepper = ResourceStepper(recording)
        created = await stepper.step(INSTANCE_URN, {"size": "small"})
        recording.failures["Delete"] = TransientRPCError("provider unreachable", method="Delete")

        result = await stepper.step(INSTANCE_URN, {"size": "large"}, created.state)

        assert result.op is StepOp.replace
        assert result.pending_delete == created.state
        assert result.calls == ["Check", "Diff", "Create"]
        assert len(recording.provider.resources()) == 2

    @pytest.mark.asyncio
    async def test_failed_create_after_delete(self, recording):
        stepper = ResourceStepper(recording)
        created = await stepper.step(BUCKET_URN, {"name": "assets"})
        recording.failures["Create"] = PermanentRPCError("quota exceeded", method="Create")

        with pytest.raises(ReplacementError) as exc_info:
            await stepper.step(BUCKET_URN, {"name": "static"}, created.state)

        assert exc_info.value.urn == BUCKET_URN
        assert recording.provider.resources() == {}


class TestRefresh:
    @pytest.mark.asyncio
    async def test_no_drift(self, rpc_client):
        stepper = ResourceStepper(rpc_client)
        created = await stepper.step(INSTANCE_URN, {"size": "small"})

        refreshed = await stepper.refresh(created.state)

        assert not refreshed.has_drift
        assert refreshed.state.id == created.state.id

    @pytest.mark.asyncio
    async def test_drift_is_reported(self, recording):
        stepper = ResourceStepper(recording)
        created = await stepper.step(INSTANCE_URN, {"size": "small"})
        await recording.provider.update(
            created.state.id, INSTANCE_URN, {"size": "small"}, {"size": "small", "label": "x"}
        )

        refreshed = await stepper.refresh(created.state)

        assert refreshed.drift == {"label", "generation"}
        assert refreshed.has_drift

    @pytest.mark.asyncio
    async def test_bool_replaced_by_number_is_drift(self, recording):
        stepper = ResourceStepper(recording)
        created = await stepper.step(BUCKET_URN, {"name": "assets", "versioning": True})
        await recording.provider.update(
            created.state.id,
            BUCKET_URN,
            {"name": "assets", "versioning": True},
            {"name": "assets", "versioning": 1},
        )

        refreshed = await stepper.refresh(created.state)

        assert refreshed.drift == {"versioning", "generation"}

    @pytest.mark.asyncio
    async def test_deleted_out_of_band(self, recording):
        stepper = ResourceStepper(recording)
        created = await stepper.step(INSTANCE_URN, {"size": "small"})
        await recording.provider.delete(created.state.id, INSTANCE_URN, {})

        refreshed = await stepper.refresh(created.state)

        assert refreshed.deleted
        assert refreshed.state is None


class TestDestroyAndImport:
    @pytest.mark.asyncio
    async def test_destroy_is_idempotent(self, rpc_client):
        stepper = ResourceStepper(rpc_client)
        created = await stepper.step(INSTANCE_URN, {"size": "small"})

        first = await stepper.destroy(created.state)
        second = await stepper.destroy(created.state)

        assert first.op is StepOp.delete
        assert second.state is None

    @pytest.mark.asyncio
    async def test_import_existing(self, rpc_client, configured_provider):
        live = await configured_provider.create(BUCKET_URN, {"name": "assets"})

        state = await ResourceStepper(rpc_client).import_resource(BUCKET_URN, live.id)

        assert state.id == live.id
        assert state.inputs["name"] == "assets"

    @pytest.mark.asyncio
    async def test_import_missing(self, rpc_client):
        state = await ResourceStepper(rpc_client).import_resource(BUCKET_URN, "r-404")
        assert state is None


class TestConnect:
    @pytest.mark.asyncio
    async def test_connect_configures_provider(self, provider):
        client = RecordingClient(provider)

        info = await connect(client, "memory", {"region": "us-east-1"}, lock=ProviderLock())

        assert info.name == "memory"
        assert client.calls == ["GetPluginInfo", "Configure"]
        assert provider.region == "us-east-1"

    @pytest.mark.asyncio
    async def test_version_mismatch_stops_before_configure(self, provider):
        client = RecordingClient(provider)
        lock = ProviderLock(providers={"memory": "0.0.1"})

        with pytest.raises(ProviderVersionMismatch):
            await connect(client, "memory", {"region": "us-east-1"}, lock=lock)

        assert client.calls == ["GetPluginInfo"]
        assert not provider.configured


def test_resource_state_properties_prefer_outputs():
    state = ResourceState("urn:x", "r-1", inputs={"a": 1, "b": 2}, outputs={"b": 3})
    assert state.properties == {"a": 1, "b": 3}


class TestConcurrentSteps:
    @pytest.mark.asyncio
    async def test_distinct_resources_step_concurrently(self, rpc_client, configured_provider):
        stepper = ResourceStepper(rpc_client)
        urns = [f"urn:tether:dev::demo::memory:index:Instance::web-{n}" for n in range(12)]

        results = await asyncio.gather(*(stepper.step(urn, {"size": "small"}) for urn in urns))

        ids = {result.state.id for result in results}
        assert len(ids) == len(urns)
        assert set(configured_provider.resources()) == ids
        assert [result.state.urn for result in results] == urns


class TestProtocolScenario:
    @pytest.mark.asyncio
    async def test_first_creation_then_immutable_change(self, rpc_client):
        checked = await rpc_client.check(INSTANCE_URN, {}, {"size": "small"})
        assert checked.inputs == {"size": "small"}
        assert checked.failures == []

        first = await rpc_client.diff("", INSTANCE_URN, {}, {"size": "small"})
        assert first.changes is DiffChanges.SOME
        assert first.replaces == []

        created = await rpc_client.create(INSTANCE_URN, {"size": "small"})
        assert created.id == "r-1"

        resize = await rpc_client.diff("r-1", INSTANCE_URN, {"size": "small"}, {"size": "large"})
        assert resize.changes is DiffChanges.SOME
        assert resize.replaces == ["size"]
