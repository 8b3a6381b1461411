"""OpenAI-compatible HTTP transcription backend."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from scribeflow.error_codes import ErrorCode
from scribeflow.exceptions import ProviderError
from scribeflow.providers.asr.base import (
    MediaFile,
    TranscriptionBackend,
    TranscriptionResult,
    validate_media_files,
)

logger = logging.getLogger(__name__)


class HTTPTranscriptionBackend(TranscriptionBackend):
    """Speech-to-text over an OpenAI-compatible `/audio/transcriptions` API.

    Each file is posted separately; texts of multiple files are joined with
    blank lines in submission order.
    """

    name = "http"

    def __init__(
        self,
        base_url: str,
        model: str = "whisper-1",
        api_key: str = "",
        timeout: float = 300.0,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the backend.

        Args:
            base_url: API base URL (e.g., http://localhost:8000/v1)
            model: Model name sent with every request
            api_key: Bearer token; omitted from headers when empty
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {}
            if self.api_key:
                headers["Authorization"] = f"Bearer {self.api_key}"
            self._client = httpx.AsyncClient(
                headers=headers,
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    async def _transcribe_one(self, file: MediaFile) -> str:
        client = await self._get_client()
        files = {"file": (file.name, file.data, file.mime_type)}
        data = {"model": self.model, "response_format": "json"}
        try:
            response = await client.post(
                f"{self.base_url}/audio/transcriptions",
                files=files,
                data=data,
            )
            response.raise_for_status()
            result = response.json()
        except httpx.HTTPError as exc:
            raise ProviderError(self.name, str(exc), error_code=ErrorCode.ASR_FAILED) from exc
        except ValueError as exc:
            raise ProviderError(self.name, f"invalid JSON response: {exc}", error_code=ErrorCode.ASR_FAILED) from exc

        if not isinstance(result, dict):
            raise ProviderError(self.name, "unexpected response payload", error_code=ErrorCode.ASR_FAILED)
        return str(result.get("text") or "").strip()

    async def transcribe(self, files: list[MediaFile]) -> TranscriptionResult:
        validate_media_files(self.name, files)
        started = time.perf_counter()
        texts: list[str] = []
        for f in files:
            logger.info("sending audio to transcription api (file=%s, bytes=%d)", f.name, f.size_bytes)
            texts.append(await self._transcribe_one(f))
        return TranscriptionResult(
            text="\n\n".join(t for t in texts if t),
            processing_time_s=time.perf_counter() - started,
            file_count=len(files),
        )

    async def health_check(self) -> dict[str, Any]:
        return {"status": "healthy", "provider": self.name, "mock_enabled": False, "base_url": self.base_url}

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "HTTPTranscriptionBackend":
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()
