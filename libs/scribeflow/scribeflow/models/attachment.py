"""Attachment model (one uploaded media file tracked through transcription)."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from scribeflow.error_codes import ErrorCode
from scribeflow.models.parent import ParentRef


class TranscriptionStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in {TranscriptionStatus.COMPLETED, TranscriptionStatus.FAILED}


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def _dt_to_iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt is not None else None


def _dt_from_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value)


@dataclass
class Attachment:
    id: int
    parent: ParentRef
    original_name: str
    object_path: str
    file_name: str = ""
    file_size: int = 0
    mime_type: str = "application/octet-stream"
    transcription_status: TranscriptionStatus = TranscriptionStatus.PENDING
    transcription_text: str | None = None
    retry_count: int = 0
    last_attempt_at: datetime | None = None
    error_message: str | None = None
    error_code: ErrorCode | None = None
    created_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": int(self.id),
            "parent": self.parent.to_dict(),
            "original_name": self.original_name,
            "object_path": self.object_path,
            "file_name": self.file_name,
            "file_size": int(self.file_size),
            "mime_type": self.mime_type,
            "transcription_status": self.transcription_status.value,
            "transcription_text": self.transcription_text,
            "retry_count": int(self.retry_count),
            "last_attempt_at": _dt_to_iso(self.last_attempt_at),
            "error_message": self.error_message,
            "error_code": self.error_code.value if self.error_code else None,
            "created_at": _dt_to_iso(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Attachment":
        return cls(
            id=int(data.get("id") or 0),
            parent=ParentRef.from_dict(dict(data.get("parent") or {})),
            original_name=str(data.get("original_name") or ""),
            object_path=str(data.get("object_path") or ""),
            file_name=str(data.get("file_name") or ""),
            file_size=int(data.get("file_size") or 0),
            mime_type=str(data.get("mime_type") or "application/octet-stream"),
            transcription_status=TranscriptionStatus(
                str(data.get("transcription_status") or TranscriptionStatus.PENDING.value)
            ),
            transcription_text=data.get("transcription_text"),
            retry_count=int(data.get("retry_count") or 0),
            last_attempt_at=_dt_from_iso(data.get("last_attempt_at")),
            error_message=data.get("error_message"),
            error_code=ErrorCode(str(data["error_code"])) if data.get("error_code") else None,
            created_at=_dt_from_iso(data.get("created_at")) or _utcnow(),
        )


@dataclass(frozen=True)
class TranscriptionSummary:
    total: int
    pending: int
    in_progress: int
    completed: int
    failed: int

    @classmethod
    def from_attachments(cls, attachments: list[Attachment]) -> "TranscriptionSummary":
        def _count(status: TranscriptionStatus) -> int:
            return sum(1 for a in attachments if a.transcription_status == status)

        return cls(
            total=len(attachments),
            pending=_count(TranscriptionStatus.PENDING),
            in_progress=_count(TranscriptionStatus.IN_PROGRESS),
            completed=_count(TranscriptionStatus.COMPLETED),
            failed=_count(TranscriptionStatus.FAILED),
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "pending": self.pending,
            "in_progress": self.in_progress,
            "completed": self.completed,
            "failed": self.failed,
        }


@dataclass(frozen=True)
class AttachmentStatusView:
    attachment_id: int
    status: TranscriptionStatus
    text: str | None
    retry_count: int
    last_attempt_at: datetime | None
    error_message: str | None
    error_code: ErrorCode | None = None

    @classmethod
    def from_attachment(cls, attachment: Attachment) -> "AttachmentStatusView":
        return cls(
            attachment_id=attachment.id,
            status=attachment.transcription_status,
            text=attachment.transcription_text,
            retry_count=attachment.retry_count,
            last_attempt_at=attachment.last_attempt_at,
            error_message=attachment.error_message,
            error_code=attachment.error_code,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "attachment_id": self.attachment_id,
            "status": self.status.value,
            "text": self.text,
            "retry_count": self.retry_count,
            "last_attempt_at": _dt_to_iso(self.last_attempt_at),
            "error_message": self.error_message,
            "error_code": self.error_code.value if self.error_code else None,
        }
