"""Service dispatch for a single provider instance.

The dispatcher sits between the wire and a ResourceProvider. For each RPC it
enforces the configured-state precondition, hands the provider private copies
of every property bag, checks the provider's response against the protocol
invariants, and logs the call.
"""

from __future__ import annotations

import time
from typing import Any, Awaitable, Callable, TypeVar

import pydantic
import structlog

from tether.core.errors import (
    NotConfiguredError,
    ProtocolViolation,
    ProviderError,
    ResourceNotFoundError,
    TetherError,
)
from tether.protocol.messages import (
    CheckRequest,
    CheckResponse,
    ConfigureRequest,
    CreateRequest,
    CreateResponse,
    DeleteRequest,
    DiffRequest,
    DiffResponse,
    Empty,
    InvokeRequest,
    InvokeResponse,
    PluginInfo,
    ReadRequest,
    ReadResponse,
    UpdateRequest,
    UpdateResponse,
)
from tether.protocol.properties import copy_properties
from tether.protocol.service import ResourceProvider

logger = structlog.get_logger()

T = TypeVar("T")

METHODS = (
    "Configure",
    "Invoke",
    "Check",
    "Diff",
    "Create",
    "Read",
    "Update",
    "Delete",
    "GetPluginInfo",
)


class ProviderDispatcher:
    """Applies the protocol contract around one provider instance."""

    def __init__(self, provider: ResourceProvider) -> None:
        self.provider = provider

    async def configure(self, request: ConfigureRequest) -> Empty:
        await self._call(
            "Configure",
            lambda: self.provider.configure(dict(request.variables)),
            require_config=False,
        )
        return Empty()

    async def invoke(self, request: InvokeRequest) -> InvokeResponse:
        return await self._call(
            "Invoke",
            lambda: self.provider.invoke(request.tok, copy_properties(request.args)),
            tok=request.tok,
        )

    async def check(self, request: CheckRequest) -> CheckResponse:
        return await self._call(
            "Check",
            lambda: self.provider.check(
                request.urn, copy_properties(request.olds), copy_properties(request.news)
            ),
            urn=request.urn,
        )

    async def diff(self, request: DiffRequest) -> DiffResponse:
        async def _diff() -> DiffResponse:
            try:
                return await self.provider.diff(
                    request.id,
                    request.urn,
                    copy_properties(request.olds),
                    copy_properties(request.news),
                )
            except pydantic.ValidationError as e:
                if e.title != DiffResponse.__name__:
                    raise
                reason = "; ".join(error["msg"] for error in e.errors())
                raise ProtocolViolation(
                    f"provider built an invalid Diff response: {reason}", {"urn": request.urn}
                ) from e

        result = await self._call("Diff", _diff, urn=request.urn, id=request.id)
        _check_diff(result, request)
        return result


    async def create(self, request: CreateRequest) -> CreateResponse:
        result = await self._call(
            "Create",
            lambda: self.provider.create(request.urn, copy_properties(request.properties)),
            urn=request.urn,
        )
        if not result.id:
            raise ProtocolViolation(
                "provider returned an empty id from Create", {"urn": request.urn}
            )
        return result

    async def read(self, request: ReadRequest) -> ReadResponse:
        async def _read() -> ReadResponse:
            try:
                return await self.provider.read(
                    request.id, request.urn, copy_properties(request.properties)
                )
            except ResourceNotFoundError:
                return ReadResponse(id="")

        return await self._call("Read", _read, urn=request.urn, id=request.id)

    async def update(self, request: UpdateRequest) -> UpdateResponse:
        return await self._call(
            "Update",
            lambda: self.provider.update(
                request.id,
                request.urn,
                copy_properties(request.olds),
                copy_properties(request.news),
            ),
            urn=request.urn,
            id=request.id,
        )

    async def delete(self, request: DeleteRequest) -> Empty:
        async def _delete() -> None:
            try:
                await self.provider.delete(
                    request.id, request.urn, copy_properties(request.properties)
                )
            except ResourceNotFoundError:
                logger.info("delete_target_absent", urn=request.urn, id=request.id)

        await self._call("Delete", _delete, urn=request.urn, id=request.id)
        return Empty()

    async def get_plugin_info(self) -> PluginInfo:
        return await self._call(
            "GetPluginInfo", self.provider.get_plugin_info, require_config=False
        )

    async def _call(
        self,
        method: str,
        handler: Callable[[], Awaitable[T]],
        *,
        require_config: bool = True,
        **context: Any,
    ) -> T:
        log = logger.bind(method=method, provider=self.provider.name, **context)
        if require_config and not self.provider.configured:
            log.warning("rpc_rejected_not_configured")
            raise NotConfiguredError(f"{method} called before Configure")

        started = time.perf_counter()
        log.debug("rpc_started")
        try:
            result = await handler()
        except TetherError as e:
            log.warning("rpc_failed", error_type=type(e).__name__, error=e.message)
            raise
        except Exception as e:
            log.error("rpc_crashed", error_type=type(e).__name__, error=str(e), exc_info=True)
            raise ProviderError(f"{method} failed: {e}", {"method": method}) from e

        log.info("rpc_completed", duration_ms=round((time.perf_counter() - started) * 1000, 2))
        return result


def _check_diff(result: DiffResponse, request: DiffRequest) -> None:
    unknown = sorted(set(result.replaces) - set(request.news))
    if unknown:
        raise ProtocolViolation(
            f"Diff replaces properties that are not inputs: {', '.join(unknown)}",
            {"urn": request.urn},
        )
