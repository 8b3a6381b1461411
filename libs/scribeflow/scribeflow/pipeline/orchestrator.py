"""Attachment orchestrator: drives each attachment through the transcription workflow."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from scribeflow.error_codes import ErrorCode
from scribeflow.exceptions import (
    ObjectNotFoundError,
    ProviderError,
    RetryBudgetExhausted,
    StorageError,
    TransientOperationError,
)
from scribeflow.models import (
    Attachment,
    AttachmentStatusView,
    ParentRef,
    TranscriptionStatus,
    TranscriptionSummary,
)
from scribeflow.pipeline.aggregator import CompletionAggregator
from scribeflow.pipeline.retry import RetryPolicy
from scribeflow.pipeline.scheduler import DelayedTaskScheduler
from scribeflow.providers.asr.base import MediaFile, TranscriptionBackend
from scribeflow.repositories import RecordStore
from scribeflow.storage import ObjectStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def _as_error_code(value: ErrorCode | str | None) -> ErrorCode:
    try:
        return ErrorCode(str(value)) if value else ErrorCode.UNKNOWN
    except ValueError:
        return ErrorCode.UNKNOWN


class AttachmentOrchestrator:
    """Status transitions per attachment:

    pending -> in_progress -> completed | pending (retry armed) | failed

    `completed` and `failed` are terminal; only `retry_one` moves `failed`
    back to `pending`. A retry consumes budget on every failed attempt,
    whatever the cause.
    """

    def __init__(
        self,
        records: RecordStore,
        store: ObjectStore,
        backend: TranscriptionBackend,
        aggregator: CompletionAggregator,
        *,
        policy: RetryPolicy | None = None,
        scheduler: DelayedTaskScheduler | None = None,
        batch_pause_s: float = 1.0,
    ) -> None:
        self.records = records
        self.store = store
        self.backend = backend
        self.aggregator = aggregator
        self.policy = policy or RetryPolicy()
        self.scheduler = scheduler or DelayedTaskScheduler()
        self.batch_pause_s = max(0.0, float(batch_pause_s))
        # Attachment ids with an attempt running in this process.
        self._claimed: set[int] = set()

    def _is_eligible(self, attachment: Attachment) -> bool:
        status = attachment.transcription_status
        if status == TranscriptionStatus.PENDING:
            return True
        return status == TranscriptionStatus.FAILED and self.policy.should_retry(attachment.retry_count)

    async def _fetch(self, attachment: Attachment) -> bytes:
        try:
            return await self.store.get_file_buffer(attachment.object_path)
        except ObjectNotFoundError as exc:
            raise TransientOperationError(attachment.id, "Object not found", error_code=ErrorCode.STORAGE_NOT_FOUND) from exc
        except (StorageError, OSError) as exc:
            raise TransientOperationError(attachment.id, str(exc), error_code=ErrorCode.STORAGE_FAILED) from exc
        except Exception as exc:
            logger.exception("object store crashed (attachment_id=%s)", attachment.id)
            raise TransientOperationError(
                attachment.id, str(exc) or type(exc).__name__, error_code=ErrorCode.STORAGE_FAILED
            ) from exc

    async def _transcribe(self, attachment: Attachment, data: bytes) -> str:
        media = MediaFile(
            name=attachment.file_name or attachment.original_name,
            data=data,
            mime_type=attachment.mime_type,
            size=attachment.file_size or None,
        )
        try:
            result = await self.backend.transcribe([media])
        except ProviderError as exc:
            raise TransientOperationError(
                attachment.id,
                exc.message,
                error_code=exc.error_code or ErrorCode.ASR_FAILED,
            ) from exc
        except Exception as exc:
            logger.exception("transcription backend crashed (attachment_id=%s)", attachment.id)
            raise TransientOperationError(attachment.id, str(exc) or type(exc).__name__, error_code=ErrorCode.UNKNOWN) from exc

        text = (result.text or "").strip()
        if not text:
            raise TransientOperationError(attachment.id, "empty transcription result", error_code=ErrorCode.ASR_FAILED)
        return text

    async def _attempt(self, attachment: Attachment) -> str:
        data = await self._fetch(attachment)
        return await self._transcribe(attachment, data)

    async def _record_failure(self, attachment: Attachment, exc: TransientOperationError) -> TranscriptionStatus | None:
        retry_count = attachment.retry_count + 1
        max_retry = self.policy.max_retry_count

        if self.policy.should_retry(retry_count):
            updated = await self.records.update_attachment(
                attachment.id,
                transcription_status=TranscriptionStatus.PENDING,
                retry_count=retry_count,
                error_message=exc.message,
                error_code=_as_error_code(exc.error_code),
            )
            if updated is None:
                logger.info("attachment removed during transcription (attachment_id=%s)", attachment.id)
                return None
            delay = self.policy.delay_for(retry_count)
            logger.warning(
                "transcription failed, retry scheduled (attachment_id=%s, file=%s, retry=%s/%s, delay_s=%s, error=%s)",
                attachment.id,
                attachment.original_name,
                retry_count,
                max_retry,
                delay,
                exc.message,
            )
            self.scheduler.schedule(
                delay,
                lambda: self._run_scheduled_retry(attachment.id),
                name=f"retry-attachment-{attachment.id}",
            )
            return TranscriptionStatus.PENDING

        updated = await self.records.update_attachment(
            attachment.id,
            transcription_status=TranscriptionStatus.FAILED,
            retry_count=retry_count,
            error_message=exc.message,
            error_code=ErrorCode.RETRY_EXHAUSTED,
        )
        if updated is None:
            logger.info("attachment removed during transcription (attachment_id=%s)", attachment.id)
            return None
        exhausted = RetryBudgetExhausted(attachment.id, retry_count)
        logger.error(
            "%s (file=%s, error=%s, cause=%s)",
            exhausted,
            attachment.original_name,
            exc.message,
            _as_error_code(exc.error_code).value,
        )
        # The last attachment to settle may be a failure; the parent can still be ready.
        await self.aggregator.check_and_trigger(attachment.parent)
        return TranscriptionStatus.FAILED

    async def _run_scheduled_retry(self, attachment_id: int) -> None:
        attachment = await self.records.get_attachment(attachment_id)
        if attachment is None:
            logger.info("scheduled retry aborted, attachment removed (attachment_id=%s)", attachment_id)
            return
        if attachment.transcription_status != TranscriptionStatus.PENDING:
            logger.info(
                "scheduled retry skipped (attachment_id=%s, status=%s)",
                attachment_id,
                attachment.transcription_status.value,
            )
            return
        await self.process_one(attachment_id)

    async def process_one(self, attachment_id: int) -> TranscriptionStatus | None:
        """Run one transcription attempt.

        Only `pending` attachments (or `failed` ones with budget left) are
        claimed; the status is re-read after claiming, so overlapping batches
        never re-run a finished attachment. Returns the resulting status, or
        None when the attachment does not exist, disappeared mid-attempt, is
        already being processed or is not eligible.
        """
        if attachment_id in self._claimed:
            logger.info("transcription already running, skipping (attachment_id=%s)", attachment_id)
            return None
        self._claimed.add(attachment_id)
        try:
            return await self._process_claimed(attachment_id)
        finally:
            self._claimed.discard(attachment_id)

    async def _process_claimed(self, attachment_id: int) -> TranscriptionStatus | None:
        attachment = await self.records.get_attachment(attachment_id)
        if attachment is None:
            logger.info("attachment not found, skipping transcription (attachment_id=%s)", attachment_id)
            return None
        if not self._is_eligible(attachment):
            logger.info(
                "transcription skipped (attachment_id=%s, status=%s, retry=%s)",
                attachment_id,
                attachment.transcription_status.value,
                attachment.retry_count,
            )
            return None

        attachment = await self.records.update_attachment(
            attachment_id,
            transcription_status=TranscriptionStatus.IN_PROGRESS,
            last_attempt_at=_utcnow(),
        )
        if attachment is None:
            return None
        logger.info(
            "transcription started (attachment_id=%s, file=%s, attempt=%s)",
            attachment.id,
            attachment.original_name,
            attachment.retry_count + 1,
        )

        try:
            text = await self._attempt(attachment)
        except TransientOperationError as exc:
            return await self._record_failure(attachment, exc)

        updated = await self.records.update_attachment(
            attachment_id,
            transcription_status=TranscriptionStatus.COMPLETED,
            transcription_text=text,
            error_message=None,
            error_code=None,
        )
        if updated is None:
            logger.info("attachment removed during transcription (attachment_id=%s)", attachment_id)
            return None
        logger.info("transcription completed (attachment_id=%s, file=%s, chars=%d)", attachment_id, attachment.original_name, len(text))

        await self.aggregator.append_transcript(attachment.parent, updated.file_name or updated.original_name, text)
        await self.aggregator.check_and_trigger(attachment.parent)
        return TranscriptionStatus.COMPLETED

    async def process_all_pending(self, parent: ParentRef) -> int:
        """Process eligible attachments one at a time; returns how many were attempted."""
        attachments = await self.records.get_attachments(parent)
        eligible = [a for a in attachments if self._is_eligible(a)]
        logger.info("processing pending transcriptions (parent=%s, count=%d)", parent.key, len(eligible))

        for attachment in eligible:
            try:
                await self.process_one(attachment.id)
            except Exception:
                logger.exception(
                    "transcription batch item failed (parent=%s, attachment_id=%s)",
                    parent.key,
                    attachment.id,
                )
            if self.batch_pause_s > 0:
                await asyncio.sleep(self.batch_pause_s)
        return len(eligible)

    def start_batch(self, parent: ParentRef) -> None:
        """Schedule `process_all_pending` in the background and return immediately."""
        self.scheduler.spawn(lambda: self.process_all_pending(parent), name=f"batch-{parent.key}")

    async def retry_one(self, attachment_id: int, *, background: bool = False) -> bool:
        attachment = await self.records.get_attachment(attachment_id)
        if attachment is None:
            logger.warning("retry rejected, attachment not found (attachment_id=%s)", attachment_id)
            return False
        if attachment.transcription_status not in {TranscriptionStatus.FAILED, TranscriptionStatus.PENDING}:
            logger.info(
                "retry rejected (attachment_id=%s, status=%s)",
                attachment_id,
                attachment.transcription_status.value,
            )
            return False

        await self.records.update_attachment(
            attachment_id,
            transcription_status=TranscriptionStatus.PENDING,
            retry_count=0,
            error_message=None,
            error_code=None,
        )
        logger.info("manual retry (attachment_id=%s, file=%s)", attachment_id, attachment.original_name)
        if background:
            self.scheduler.spawn(lambda: self.process_one(attachment_id), name=f"retry-attachment-{attachment_id}")
        else:
            await self.process_one(attachment_id)
        return True

    async def summarize(self, parent: ParentRef) -> TranscriptionSummary:
        return TranscriptionSummary.from_attachments(await self.records.get_attachments(parent))

    async def get_attachment_status(self, attachment_id: int) -> AttachmentStatusView | None:
        attachment = await self.records.get_attachment(attachment_id)
        if attachment is None:
            return None
        return AttachmentStatusView.from_attachment(attachment)
