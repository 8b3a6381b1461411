"""Deterministic mock transcription backend for development and tests."""

from __future__ import annotations

import asyncio
import hashlib
import logging
from typing import Any

from scribeflow.providers.asr.base import (
    MediaFile,
    TranscriptionBackend,
    TranscriptionResult,
    validate_media_files,
)

logger = logging.getLogger(__name__)

MOCK_TRANSCRIPTS: tuple[str, ...] = (
    "This is a mock transcription of an audio file. The speaker discusses various topics including "
    "product development, user feedback, and future roadmap planning. Key insights include the importance "
    "of user-centered design and iterative development processes.",
    "In this recording, we hear about customer research methodologies and best practices. The discussion "
    "covers interview techniques, data analysis approaches, and how to effectively communicate findings to "
    "stakeholders. Several case studies are mentioned throughout the conversation.",
    "The audio contains a detailed discussion about market research findings. Topics include customer pain "
    "points, competitive analysis, and opportunities for product improvement. The speaker emphasizes the "
    "need for data-driven decision making and continuous customer engagement.",
    "This transcription captures a team meeting about project planning and resource allocation. Key points "
    "include timeline considerations, budget constraints, and team coordination strategies. The discussion "
    "also touches on risk management and contingency planning.",
    "The recording features an interview with a subject matter expert discussing industry trends and future "
    "predictions. Topics covered include technological advancements, market shifts, and strategic "
    "recommendations for organizations looking to stay competitive.",
)

_SECONDS_PER_FILE = 180.0


def pick_transcript(file_name: str) -> str:
    digest = hashlib.sha256(file_name.encode("utf-8")).digest()
    return MOCK_TRANSCRIPTS[digest[0] % len(MOCK_TRANSCRIPTS)]


def simulated_processing_time_s(files: list[MediaFile]) -> float:
    """2s base, +1s per MB (capped at 10s), +0.5s per file."""
    total_size = sum(f.size_bytes for f in files)
    size_factor = min(total_size / (1024 * 1024), 10.0)
    return 2.0 + size_factor + 0.5 * len(files)


class MockTranscriptionBackend(TranscriptionBackend):
    name = "mock"

    def __init__(self, max_delay_s: float = 5.0) -> None:
        self.max_delay_s = max(0.0, float(max_delay_s))

    async def transcribe(self, files: list[MediaFile]) -> TranscriptionResult:
        validate_media_files(self.name, files)
        logger.info("mock transcription (files=%d)", len(files))

        processing_time = simulated_processing_time_s(files)
        delay = min(processing_time, self.max_delay_s)
        if delay > 0:
            await asyncio.sleep(delay)

        if len(files) == 1:
            text = pick_transcript(files[0].name)
        else:
            text = "\n".join(
                f"\n\n--- File {i}: {f.name} ---\n{pick_transcript(f.name)}"
                for i, f in enumerate(files, start=1)
            )

        return TranscriptionResult(
            text=text,
            processing_time_s=processing_time,
            file_count=len(files),
            total_duration_s=_SECONDS_PER_FILE * len(files),
        )

    async def health_check(self) -> dict[str, Any]:
        return {"status": "healthy", "provider": self.name, "mock_enabled": True}
