"""Service facade over the transcription core, used by the API and scripts."""

from __future__ import annotations

import logging
from typing import Any

from scribeflow.config import Settings
from scribeflow.dispatch import EventDispatcher
from scribeflow.dispatch.kafka_dispatcher import ProducerFactory
from scribeflow.exceptions import AttachmentNotFoundError, ConfigurationError, InvalidMediaError
from scribeflow.models import (
    Attachment,
    AttachmentStatusView,
    ParentRecord,
    ParentRef,
    TranscriptionSummary,
)
from scribeflow.pipeline.aggregator import CompletionAggregator
from scribeflow.pipeline.concurrency import ParentLockRegistry
from scribeflow.pipeline.orchestrator import AttachmentOrchestrator
from scribeflow.pipeline.retry import RetryPolicy
from scribeflow.pipeline.scheduler import DelayedTaskScheduler
from scribeflow.providers import get_transcription_backend
from scribeflow.providers.asr.base import MediaFile, TranscriptionBackend, is_supported_media
from scribeflow.repositories import RecordStore, get_record_store
from scribeflow.storage import ObjectStore, get_object_store

logger = logging.getLogger(__name__)


class TranscriptionService:
    def __init__(
        self,
        settings: Settings,
        *,
        records: RecordStore,
        store: ObjectStore,
        backend: TranscriptionBackend,
        dispatcher: EventDispatcher,
        scheduler: DelayedTaskScheduler | None = None,
    ) -> None:
        self.settings = settings
        self.records = records
        self.store = store
        self.backend = backend
        self.dispatcher = dispatcher
        self.scheduler = scheduler or DelayedTaskScheduler()
        self.aggregator = CompletionAggregator(records, dispatcher, locks=ParentLockRegistry())
        self.orchestrator = AttachmentOrchestrator(
            records,
            store,
            backend,
            self.aggregator,
            policy=RetryPolicy.from_config(settings.transcription),
            scheduler=self.scheduler,
            batch_pause_s=settings.transcription.batch_pause_s,
        )

    async def ensure_parent(self, parent: ParentRef, **attributes: Any) -> ParentRecord:
        record = await self.records.get_parent(parent)
        if record is None:
            record = ParentRecord(ref=parent, attributes=dict(attributes))
            await self.records.save_parent(record)
            logger.info("parent record created (parent=%s)", parent.key)
        return record

    async def upload_attachment(
        self,
        parent: ParentRef,
        *,
        filename: str,
        data: bytes,
        content_type: str | None = None,
        start: bool = False,
    ) -> Attachment:
        """Store an uploaded file and register it as a pending attachment."""
        name = str(filename or "").strip()
        if not name:
            raise ConfigurationError("uploaded file has no name")
        if len(data) > int(self.settings.upload_max_bytes):
            raise ConfigurationError(
                f"file too large: {len(data)} bytes (max {self.settings.upload_max_bytes})"
            )
        mime_type = str(content_type or "application/octet-stream")
        if not is_supported_media(MediaFile(name=name, data=b"", mime_type=mime_type, size=len(data))):
            raise InvalidMediaError("upload", f"Invalid file type: {name} ({mime_type})")

        await self.ensure_parent(parent)
        reference = await self.store.upload(data, name)
        attachment = await self.records.create_attachment(
            parent,
            original_name=name,
            object_path=reference,
            file_name=name,
            file_size=len(data),
            mime_type=mime_type,
        )
        logger.info(
            "attachment uploaded (parent=%s, attachment_id=%s, file=%s, bytes=%d)",
            parent.key,
            attachment.id,
            name,
            len(data),
        )
        if start:
            self.start_batch(parent)
        return attachment

    def start_batch(self, parent: ParentRef) -> None:
        self.orchestrator.start_batch(parent)

    async def retry_one(self, attachment_id: int) -> bool:
        return await self.orchestrator.retry_one(attachment_id, background=True)

    async def get_summary(self, parent: ParentRef) -> TranscriptionSummary:
        return await self.orchestrator.summarize(parent)

    async def get_attachment_status(self, attachment_id: int) -> AttachmentStatusView:
        view = await self.orchestrator.get_attachment_status(attachment_id)
        if view is None:
            raise AttachmentNotFoundError(attachment_id)
        return view

    async def resend_completion(self, parent: ParentRef) -> bool:
        return await self.aggregator.resend(parent)

    async def startup(self) -> None:
        await self.dispatcher.start()

    async def shutdown(self) -> None:
        await self.scheduler.shutdown()
        await self.dispatcher.stop()
        await self.backend.close()
        await self.records.close()

    async def health(self) -> dict[str, Any]:
        return {
            "transcription": await self.backend.health_check(),
            "dispatcher": self.dispatcher.status(),
            "background_tasks": self.scheduler.pending,
        }


def create_transcription_service(
    settings: Settings,
    *,
    records: RecordStore | None = None,
    store: ObjectStore | None = None,
    backend: TranscriptionBackend | None = None,
    producer_factory: ProducerFactory | None = None,
) -> TranscriptionService:
    """Wire the service from settings; any collaborator can be injected."""
    return TranscriptionService(
        settings,
        records=records or get_record_store(settings),
        store=store or get_object_store(settings),
        backend=backend or get_transcription_backend(settings.asr_config()),
        dispatcher=EventDispatcher(settings.kafka, producer_factory=producer_factory),
    )
