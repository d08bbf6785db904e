from __future__ import annotations

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from tether.protocol import ProviderDispatcher
from tether.server.deps import get_dispatcher

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    provider: str
    version: str
    configured: bool


@router.get("/health", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def health_check(
    dispatcher: ProviderDispatcher = Depends(get_dispatcher),  # noqa: B008
) -> HealthResponse:
    """Liveness check; also reports whether Configure has succeeded."""
    provider = dispatcher.provider
    return HealthResponse(
        status="healthy",
        provider=provider.name,
        version=provider.version,
        configured=provider.configured,
    )
