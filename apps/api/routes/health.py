"""Health check routes (dispatcher, transcription backend)."""

from __future__ import annotations

from fastapi import APIRouter, Request
from pydantic import BaseModel

from routes._deps import service

router = APIRouter(tags=["health"])


class DispatcherHealthResponse(BaseModel):
    status: str  # "ok" | "disabled" | "degraded"
    enabled: bool
    connected: bool
    state: str
    brokers: list[str]


class TranscriptionHealthResponse(BaseModel):
    status: str
    provider: str
    mock_enabled: bool
    background_tasks: int


@router.get("/health/dispatcher", response_model=DispatcherHealthResponse)
async def dispatcher_health(request: Request) -> DispatcherHealthResponse:
    snapshot = service(request).dispatcher.status()
    if not snapshot["enabled"]:
        status = "disabled"
    elif snapshot["connected"]:
        status = "ok"
    else:
        status = "degraded"
    return DispatcherHealthResponse(status=status, **snapshot)


@router.get("/health/transcription", response_model=TranscriptionHealthResponse)
async def transcription_health(request: Request) -> TranscriptionHealthResponse:
    snapshot = await service(request).health()
    backend = dict(snapshot["transcription"])
    return TranscriptionHealthResponse(
        status=str(backend.get("status") or "unknown"),
        provider=str(backend.get("provider") or "unknown"),
        mock_enabled=bool(backend.get("mock_enabled", False)),
        background_tasks=int(snapshot["background_tasks"]),
    )
