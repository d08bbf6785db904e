from __future__ import annotations

from fastapi import Request

from tether.protocol import ProviderDispatcher


def get_dispatcher(request: Request) -> ProviderDispatcher:
    return request.app.state.dispatcher
