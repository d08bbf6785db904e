"""Issue a single RPC against a running provider service."""

from __future__ import annotations

import asyncio
import json
from typing import Any

from tether.cli import ux
from tether.client import ResourceProviderClient
from tether.config import get_settings
from tether.core.errors import (
    ExitCode,
    TetherError,
    ValidationError,
    format_error_message,
    main_with_error_handling,
)
from tether.protocol import (
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
from tether.protocol.messages import Message

RPC_MESSAGES: dict[str, tuple[type[Message] | None, type[Message]]] = {
    "Configure": (ConfigureRequest, Empty),
    "Invoke": (InvokeRequest, InvokeResponse),
    "Check": (CheckRequest, CheckResponse),
    "Diff": (DiffRequest, DiffResponse),
    "Create": (CreateRequest, CreateResponse),
    "Read": (ReadRequest, ReadResponse),
    "Update": (UpdateRequest, UpdateResponse),
    "Delete": (DeleteRequest, Empty),
    "GetPluginInfo": (None, PluginInfo),
}


def build_request(method: str, data: str | None) -> Message | None:
    if method not in RPC_MESSAGES:
        raise ValidationError(
            f"unknown method '{method}'", {"choices": ", ".join(RPC_MESSAGES)}
        )
    request_cls, _ = RPC_MESSAGES[method]
    if request_cls is None:
        return None
    try:
        payload: Any = json.loads(data) if data else {}
    except json.JSONDecodeError as e:
        raise ValidationError(f"--data is not valid JSON: {e}") from e
    try:
        return request_cls.model_validate(payload)
    except ValueError as e:
        raise ValidationError(f"invalid {method} request: {e}") from e


async def _call(url: str, method: str, request: Message | None) -> dict[str, Any]:
    _, response_cls = RPC_MESSAGES[method]
    async with ResourceProviderClient.from_settings(url) as client:
        response = await client.call(method, request, response_cls)
    return response.to_wire()


@main_with_error_handling(log_errors=False)
def call_command(method: str, url: str | None = None, data: str | None = None) -> int:
    settings = get_settings()
    base_url = url or f"http://{settings.host}:{settings.port}"
    request = build_request(method, data)
    try:
        result = asyncio.run(_call(base_url, method, request))
    except TetherError as e:
        ux.error(f"{method} failed: {format_error_message(e)}")
        raise
    ux.print_json(result)
    failures = result.get("failures") or []
    if failures:
        ux.warning(f"{method} reported {len(failures)} validation failure(s)")
        return ExitCode.VALIDATION_ERROR
    return ExitCode.SUCCESS
