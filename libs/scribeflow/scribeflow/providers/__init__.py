"""Provider abstractions for external services."""

from scribeflow.providers.registry import get_transcription_backend

__all__ = ["get_transcription_backend"]
