"""Transcription workflow routes."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from scribeflow.exceptions import AttachmentNotFoundError, ParentNotFoundError

from routes._deps import parent_ref, service

router = APIRouter(prefix="/api", tags=["transcriptions"])


class StartResponse(BaseModel):
    status: str
    entity_type: str
    parent_id: int


class SummaryResponse(BaseModel):
    total: int
    pending: int
    in_progress: int
    completed: int
    failed: int


class RetryResponse(BaseModel):
    success: bool


class AttachmentStatusResponse(BaseModel):
    attachment_id: int
    status: str
    text: str | None = None
    retry_count: int
    last_attempt_at: datetime | None = None
    error_message: str | None = None
    error_code: str | None = None


class ResendResponse(BaseModel):
    sent: bool
    dispatcher: dict


@router.post("/{entity}/{parent_id}/transcriptions/start", response_model=StartResponse, status_code=202)
async def start_transcriptions(request: Request, entity: str, parent_id: int) -> StartResponse:
    parent = parent_ref(entity, parent_id)
    service(request).start_batch(parent)
    return StartResponse(status="started", entity_type=parent.entity_type.value, parent_id=parent.id)


@router.get("/{entity}/{parent_id}/transcriptions/summary", response_model=SummaryResponse)
async def transcription_summary(request: Request, entity: str, parent_id: int) -> SummaryResponse:
    summary = await service(request).get_summary(parent_ref(entity, parent_id))
    return SummaryResponse(**summary.to_dict())


@router.post("/{entity}/{parent_id}/completion/resend", response_model=ResendResponse)
async def resend_completion(request: Request, entity: str, parent_id: int) -> ResendResponse:
    svc = service(request)
    try:
        sent = await svc.resend_completion(parent_ref(entity, parent_id))
    except ParentNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return ResendResponse(sent=sent, dispatcher=svc.dispatcher.status())


@router.post("/attachments/{attachment_id}/retry", response_model=RetryResponse)
async def retry_attachment(request: Request, attachment_id: int) -> RetryResponse:
    return RetryResponse(success=await service(request).retry_one(attachment_id))


@router.get("/attachments/{attachment_id}/transcription", response_model=AttachmentStatusResponse)
async def attachment_transcription(request: Request, attachment_id: int) -> AttachmentStatusResponse:
    try:
        view = await service(request).get_attachment_status(attachment_id)
    except AttachmentNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return AttachmentStatusResponse(
        attachment_id=view.attachment_id,
        status=view.status.value,
        text=view.text,
        retry_count=view.retry_count,
        last_attempt_at=view.last_attempt_at,
        error_message=view.error_message,
        error_code=view.error_code.value if view.error_code else None,
    )
