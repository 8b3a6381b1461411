"""Core data models for ScribeFlow."""

from scribeflow.models.attachment import (
    Attachment,
    AttachmentStatusView,
    TranscriptionStatus,
    TranscriptionSummary,
)
from scribeflow.models.parent import EntityType, ParentRecord, ParentRef, SummarizationStatus

__all__ = [
    "Attachment",
    "AttachmentStatusView",
    "EntityType",
    "ParentRecord",
    "ParentRef",
    "SummarizationStatus",
    "TranscriptionStatus",
    "TranscriptionSummary",
]
