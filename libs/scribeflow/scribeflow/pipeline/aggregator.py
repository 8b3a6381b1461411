"""Completion aggregation: transcript appends and the ready-for-summarization trigger."""

from __future__ import annotations

import logging

from scribeflow.dispatch import EventDispatcher
from scribeflow.exceptions import ParentNotFoundError
from scribeflow.models import ParentRef, SummarizationStatus, TranscriptionStatus
from scribeflow.pipeline.concurrency import ParentLockRegistry
from scribeflow.repositories import RecordStore

logger = logging.getLogger(__name__)


def format_transcript_block(file_name: str, text: str) -> str:
    return f"\n\n---\n\n**Transcription of {file_name}**\n\n{text}"


class CompletionAggregator:
    """Owns the parent's aggregate state.

    Appends and check-and-dispatch for one parent run under that parent's
    lock, so within a process there are no lost appends and no concurrent
    initial dispatches. Persistence errors are logged and never reach the
    orchestrator.
    """

    def __init__(
        self,
        records: RecordStore,
        dispatcher: EventDispatcher,
        *,
        locks: ParentLockRegistry | None = None,
    ) -> None:
        self.records = records
        self.dispatcher = dispatcher
        self.locks = locks or ParentLockRegistry()

    async def append_transcript(self, parent: ParentRef, file_name: str, text: str) -> bool:
        async with self.locks.hold(parent.key):
            try:
                record = await self.records.get_parent(parent)
                if record is None:
                    logger.warning("append skipped, parent not found (parent=%s, file=%s)", parent.key, file_name)
                    return False
                full_text = (record.full_text or "") + format_transcript_block(file_name, text)
                await self.records.update_parent(parent, full_text=full_text)
            except Exception:
                logger.exception("append transcript failed (parent=%s, file=%s)", parent.key, file_name)
                return False
        logger.info("transcript appended (parent=%s, file=%s, chars=%d)", parent.key, file_name, len(text))
        return True

    async def check_and_trigger(self, parent: ParentRef) -> bool:
        """Dispatch the completion event once every attachment is terminal.

        Returns True when a dispatch was attempted.
        """
        async with self.locks.hold(parent.key):
            try:
                attachments = await self.records.get_attachments(parent)
                if not attachments:
                    logger.info("no attachments, skipping summarization check (parent=%s)", parent.key)
                    return False

                outstanding = sum(1 for a in attachments if not a.transcription_status.is_terminal)
                if outstanding:
                    logger.info(
                        "transcriptions outstanding (parent=%s, outstanding=%d, total=%d)",
                        parent.key,
                        outstanding,
                        len(attachments),
                    )
                    return False

                successful = [
                    a
                    for a in attachments
                    if a.transcription_status == TranscriptionStatus.COMPLETED and (a.transcription_text or "").strip()
                ]
                if not successful:
                    logger.warning(
                        "all transcriptions failed, skipping summarization (parent=%s, total=%d)",
                        parent.key,
                        len(attachments),
                    )
                    return False

                record = await self.records.get_parent(parent)
                if record is None:
                    logger.warning("summarization check skipped, parent not found (parent=%s)", parent.key)
                    return False
                if record.summarization_status == SummarizationStatus.IN_PROGRESS:
                    logger.info("summarization already in progress (parent=%s)", parent.key)
                    return False

                action = "completed" if record.dispatch_count == 0 else "updated"
                record = await self.records.update_parent(
                    parent,
                    summarization_status=SummarizationStatus.IN_PROGRESS,
                    dispatch_count=record.dispatch_count + 1,
                )
                if record is None:
                    logger.warning("parent removed during summarization check (parent=%s)", parent.key)
                    return False
            except Exception:
                logger.exception("summarization check failed (parent=%s)", parent.key)
                return False

            logger.info(
                "all transcriptions complete, triggering summarization (parent=%s, completed=%d, total=%d, action=%s)",
                parent.key,
                len(successful),
                len(attachments),
                action,
            )
            try:
                await self.dispatcher.dispatch_completion(record, action)
            except Exception:
                logger.exception("completion dispatch failed (parent=%s, action=%s)", parent.key, action)
            return True

    async def resend(self, parent: ParentRef) -> bool:
        """Re-publish the completion event as `updated`, bypassing the guard.

        Raises ParentNotFoundError for an unknown parent; returns whether the
        broker acknowledged the event.
        """
        async with self.locks.hold(parent.key):
            record = await self.records.get_parent(parent)
            if record is None:
                raise ParentNotFoundError(parent.key)
            record = await self.records.update_parent(
                parent,
                summarization_status=SummarizationStatus.IN_PROGRESS,
                dispatch_count=record.dispatch_count + 1,
            )
            if record is None:
                raise ParentNotFoundError(parent.key)
            logger.info("resending completion event (parent=%s, dispatch_count=%d)", parent.key, record.dispatch_count)
            return await self.dispatcher.dispatch_completion(record, "updated")
