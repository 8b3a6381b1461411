"""Speech-to-text backends."""

from scribeflow.providers.asr.base import MediaFile, TranscriptionBackend, TranscriptionResult

__all__ = ["MediaFile", "TranscriptionBackend", "TranscriptionResult"]
