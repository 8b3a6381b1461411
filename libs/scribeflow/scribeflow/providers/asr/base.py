"""Transcription backend base class."""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from scribeflow.exceptions import InvalidMediaError

SUPPORTED_MIME_TYPES = frozenset(
    {
        "audio/mpeg",
        "audio/wav",
        "audio/ogg",
        "audio/mp4",
        "audio/aac",
        "audio/flac",
        "video/mp4",
        "video/avi",
        "video/mov",
        "video/wmv",
        "video/webm",
        "video/mkv",
    }
)

_SUPPORTED_EXTENSION = re.compile(r"\.(mp3|wav|ogg|m4a|aac|flac|mp4|avi|mov|wmv|webm|mkv)$", re.IGNORECASE)


@dataclass(frozen=True)
class MediaFile:
    """An in-memory media file handed to a backend."""

    name: str
    data: bytes
    mime_type: str
    size: int | None = None

    @property
    def size_bytes(self) -> int:
        return int(self.size) if self.size is not None else len(self.data)


@dataclass(frozen=True)
class TranscriptionResult:
    text: str
    processing_time_s: float
    file_count: int
    total_duration_s: float | None = None


def is_supported_media(file: MediaFile) -> bool:
    return file.mime_type in SUPPORTED_MIME_TYPES or bool(_SUPPORTED_EXTENSION.search(file.name))


def validate_media_files(provider: str, files: list[MediaFile]) -> None:
    """Reject empty submissions and files with neither a known MIME type nor extension."""
    if not files:
        raise InvalidMediaError(provider, "No files provided for transcription")
    invalid = [f.name for f in files if not is_supported_media(f)]
    if invalid:
        raise InvalidMediaError(provider, f"Invalid file types detected: {', '.join(invalid)}")


class TranscriptionBackend(ABC):
    """Abstract base class for speech-to-text backends."""

    name: str = "asr"

    @abstractmethod
    async def transcribe(self, files: list[MediaFile]) -> TranscriptionResult:
        """Transcribe one or more media files into a single text.

        Args:
            files: In-memory media files.

        Returns:
            Combined transcription result.
        """
        ...

    async def health_check(self) -> dict[str, Any]:
        return {"status": "healthy", "provider": self.name}

    async def close(self) -> None:  # pragma: no cover
        return None
