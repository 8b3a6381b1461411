from __future__ import annotations

from fastapi import HTTPException, Request

from scribeflow.models import ParentRef
from scribeflow.services import TranscriptionService

_ENTITY_ALIASES = {
    "meeting": "meeting",
    "meetings": "meeting",
    "research": "research",
    "researches": "research",
}


def service(request: Request) -> TranscriptionService:
    svc: TranscriptionService | None = getattr(request.app.state, "service", None)
    if svc is None:
        raise HTTPException(status_code=500, detail="transcription service not initialized")
    return svc


def parent_ref(entity: str, parent_id: int) -> ParentRef:
    entity_type = _ENTITY_ALIASES.get(str(entity or "").strip().lower())
    if entity_type is None:
        raise HTTPException(status_code=404, detail=f"unknown entity type: {entity}")
    return ParentRef.parse(entity_type, parent_id)
