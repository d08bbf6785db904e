"""ResourceProvider RPC routes: one POST endpoint per method."""

from __future__ import annotations

from fastapi import APIRouter, Depends

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
    ProviderDispatcher,
    ReadRequest,
    ReadResponse,
    UpdateRequest,
    UpdateResponse,
)
from tether.server.deps import get_dispatcher

router = APIRouter()


@router.post("/Configure", response_model=Empty)
async def configure(
    body: ConfigureRequest,
    dispatcher: ProviderDispatcher = Depends(get_dispatcher),  # noqa: B008
) -> Empty:
    return await dispatcher.configure(body)


@router.post("/Invoke", response_model=InvokeResponse)
async def invoke(
    body: InvokeRequest,
    dispatcher: ProviderDispatcher = Depends(get_dispatcher),  # noqa: B008
) -> InvokeResponse:
    return await dispatcher.invoke(body)


@router.post("/Check", response_model=CheckResponse)
async def check(
    body: CheckRequest,
    dispatcher: ProviderDispatcher = Depends(get_dispatcher),  # noqa: B008
) -> CheckResponse:
    return await dispatcher.check(body)


@router.post("/Diff", response_model=DiffResponse)
async def diff(
    body: DiffRequest,
    dispatcher: ProviderDispatcher = Depends(get_dispatcher),  # noqa: B008
) -> DiffResponse:
    return await dispatcher.diff(body)


@router.post("/Create", response_model=CreateResponse)
async def create(
    body: CreateRequest,
    dispatcher: ProviderDispatcher = Depends(get_dispatcher),  # noqa: B008
) -> CreateResponse:
    return await dispatcher.create(body)


@router.post("/Read", response_model=ReadResponse)
async def read(
    body: ReadRequest,
    dispatcher: ProviderDispatcher = Depends(get_dispatcher),  # noqa: B008
) -> ReadResponse:
    return await dispatcher.read(body)


@router.post("/Update", response_model=UpdateResponse)
async def update(
    body: UpdateRequest,
    dispatcher: ProviderDispatcher = Depends(get_dispatcher),  # noqa: B008
) -> UpdateResponse:
    return await dispatcher.update(body)


@router.post("/Delete", response_model=Empty)
async def delete(
    body: DeleteRequest,
    dispatcher: ProviderDispatcher = Depends(get_dispatcher),  # noqa: B008
) -> Empty:
    return await dispatcher.delete(body)


@router.post("/GetPluginInfo", response_model=PluginInfo)
async def get_plugin_info(
    dispatcher: ProviderDispatcher = Depends(get_dispatcher),  # noqa: B008
) -> PluginInfo:
    return await dispatcher.get_plugin_info()
