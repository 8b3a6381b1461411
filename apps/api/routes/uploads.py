"""Attachment upload routes."""

from __future__ import annotations

import mimetypes
from pathlib import Path

from fastapi import APIRouter, File, HTTPException, Query, Request, UploadFile
from pydantic import BaseModel

from scribeflow.exceptions import ConfigurationError, InvalidMediaError, StorageError

from routes._deps import parent_ref, service

router = APIRouter(prefix="/api", tags=["uploads"])


class AttachmentResponse(BaseModel):
    id: int
    entity_type: str
    parent_id: int
    original_name: str
    file_size: int
    mime_type: str
    object_path: str
    transcription_status: str
    batch_started: bool


def _sanitize_filename(filename: str | None) -> str:
    base = Path(str(filename or "").strip()).name.replace("\x00", "")
    if not base:
        return "upload.bin"
    return base[:255]


def _detect_content_type(filename: str, provided: str | None) -> str:
    candidate = str(provided or "").strip()
    if candidate and candidate != "application/octet-stream":
        return candidate
    guessed, _ = mimetypes.guess_type(filename)
    return str(guessed or candidate or "application/octet-stream")


async def _read_upload(upload: UploadFile, *, max_bytes: int, chunk_size: int = 8 * 1024 * 1024) -> bytes:
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await upload.read(chunk_size)
        if not chunk:
            break
        total += len(chunk)
        if total > max_bytes:
            raise HTTPException(status_code=413, detail="file too large")
        chunks.append(chunk)
    return b"".join(chunks)


@router.post("/{entity}/{parent_id}/attachments", response_model=AttachmentResponse, status_code=201)
async def upload_attachment(
    request: Request,
    entity: str,
    parent_id: int,
    file: UploadFile = File(...),
    start: bool = Query(False),
) -> AttachmentResponse:
    svc = service(request)
    parent = parent_ref(entity, parent_id)
    safe_name = _sanitize_filename(file.filename)
    content_type = _detect_content_type(safe_name, file.content_type)

    try:
        data = await _read_upload(file, max_bytes=int(svc.settings.upload_max_bytes))
        attachment = await svc.upload_attachment(
            parent,
            filename=safe_name,
            data=data,
            content_type=content_type,
            start=start,
        )
    except InvalidMediaError as exc:
        raise HTTPException(status_code=400, detail=exc.message) from exc
    except ConfigurationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except StorageError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    finally:
        await file.close()

    return AttachmentResponse(
        id=attachment.id,
        entity_type=parent.entity_type.value,
        parent_id=parent.id,
        original_name=attachment.original_name,
        file_size=attachment.file_size,
        mime_type=attachment.mime_type,
        object_path=attachment.object_path,
        transcription_status=attachment.transcription_status.value,
        batch_started=bool(start),
    )
