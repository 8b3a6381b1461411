"""Provider factory and registry."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from scribeflow.exceptions import ConfigurationError
from scribeflow.providers.asr.base import TranscriptionBackend


def get_transcription_backend(config: Mapping[str, Any]) -> TranscriptionBackend:
    """Get transcription backend based on configuration."""
    provider_type = str(config.get("provider", "mock")).strip().lower()

    match provider_type:
        case "mock":
            from scribeflow.providers.asr.mock import MockTranscriptionBackend

            return MockTranscriptionBackend(max_delay_s=float(config.get("mock_max_delay_s", 5.0)))
        case "http" | "openai_compat":
            from scribeflow.providers.asr.http_asr import HTTPTranscriptionBackend

            base_url = str(config.get("base_url") or "").strip()
            if not base_url:
                raise ConfigurationError("HTTP transcription backend requires base_url")
            return HTTPTranscriptionBackend(
                base_url=base_url,
                model=str(config.get("model") or "whisper-1"),
                api_key=str(config.get("api_key") or ""),
                timeout=float(config.get("timeout", 300.0)),
            )
        case _:
            raise ConfigurationError(f"Unknown ASR provider: {provider_type}")
