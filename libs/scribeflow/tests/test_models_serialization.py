from __future__ import annotations

import json
from datetime import datetime, timezone

from scribeflow.error_codes import ErrorCode
from scribeflow.models import (
    Attachment,
    AttachmentStatusView,
    ParentRecord,
    ParentRef,
    SummarizationStatus,
    TranscriptionStatus,
    TranscriptionSummary,
)


def test_attachment_survives_json_persistence() -> None:
    attempted = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)
    att = Attachment(
        id=7,
        parent=ParentRef.parse("Research", "12"),
        original_name="kickoff.m4a",
        object_path="/objects/uploads/abc",
        file_size=2048,
        mime_type="audio/mp4",
        transcription_status=TranscriptionStatus.PENDING,
        retry_count=2,
        last_attempt_at=attempted,
        error_message="backend unavailable",
        error_code=ErrorCode.ASR_FAILED,
    )
    restored = Attachment.from_dict(json.loads(json.dumps(att.to_dict())))
    assert restored == att
    assert restored.parent.key == "research-12"


def test_parent_record_defaults_from_sparse_dict() -> None:
    record = ParentRecord.from_dict({"ref": {"entity_type": "meeting", "id": 3}, "links": {"jtbds": [{"id": 1}, "junk"]}})
    assert record.summarization_status == SummarizationStatus.NOT_STARTED
    assert record.dispatch_count == 0
    assert record.full_text == ""
    assert record.links == {"jtbds": [{"id": 1}]}


def test_summary_and_status_view() -> None:
    parent = ParentRef.parse("meeting", 1)
    attachments = [
        Attachment(id=i, parent=parent, original_name=f"{i}.mp3", object_path=f"/objects/uploads/{i}", transcription_status=s)
        for i, s in enumerate(
            [TranscriptionStatus.PENDING, TranscriptionStatus.COMPLETED, TranscriptionStatus.COMPLETED, TranscriptionStatus.FAILED]
        )
    ]
    assert TranscriptionSummary.from_attachments(attachments).to_dict() == {
        "total": 4,
        "pending": 1,
        "in_progress": 0,
        "completed": 2,
        "failed": 1,
    }
    assert TranscriptionStatus.FAILED.is_terminal
    assert not TranscriptionStatus.IN_PROGRESS.is_terminal

    view = AttachmentStatusView.from_attachment(attachments[3]).to_dict()
    assert view["status"] == "failed"
    assert view["last_attempt_at"] is None
