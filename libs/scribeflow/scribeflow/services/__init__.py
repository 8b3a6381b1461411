"""Application-facing services."""

from scribeflow.services.transcription_service import TranscriptionService, create_transcription_service

__all__ = ["TranscriptionService", "create_transcription_service"]
