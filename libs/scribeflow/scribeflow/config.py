"""Configuration management using pydantic-settings."""

from pathlib import Path
from typing import Any

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from scribeflow.exceptions import ConfigurationError

_ENV_FILES = (".env", "../.env", "../../.env")

_REPO_ROOT = Path(__file__).resolve().parents[3]


def _resolve_repo_path(value: str) -> str:
    raw = str(value or "").strip()
    if not raw:
        return raw
    p = Path(raw)
    if p.is_absolute():
        return str(p)
    return str((_REPO_ROOT / p).resolve())


def parse_brokers(value: str) -> list[str]:
    """Split a comma separated broker list, dropping blanks."""
    return [b.strip() for b in str(value or "").split(",") if b.strip()]


class TranscriptionConfig(BaseSettings):
    """Per-attachment retry and batch pacing."""

    model_config = SettingsConfigDict(
        env_prefix="TRANSCRIPTION_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_retry_count: int = Field(default=3, ge=1)
    base_delay_s: float = Field(default=5.0, ge=0)
    batch_pause_s: float = Field(default=1.0, ge=0)
    # "linear" (base * n) or "exponential" (base * 2^(n-1))
    backoff: str = "linear"

    @model_validator(mode="after")
    def _validate_backoff(self) -> "TranscriptionConfig":
        name = str(self.backoff or "").strip().lower()
        if name not in {"linear", "exponential"}:
            raise ConfigurationError(
                f"TRANSCRIPTION_BACKOFF must be 'linear' or 'exponential' (got {self.backoff!r})"
            )
        self.backoff = name
        return self


class ASRConfig(BaseSettings):
    """Transcription backend configuration."""

    model_config = SettingsConfigDict(
        env_prefix="ASR_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    provider: str = "mock"  # "mock" | "http"
    base_url: str = "http://localhost:8000/v1"
    api_key: str = ""
    model: str = "whisper-1"
    timeout: float = 300.0  # per request, seconds
    mock_max_delay_s: float = Field(default=5.0, ge=0)


class KafkaConfig(BaseSettings):
    """Broker connection, security and topic configuration."""

    model_config = SettingsConfigDict(
        env_prefix="KAFKA_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    enabled: bool = False
    brokers: str = "localhost:9092"
    client_id: str = "scribeflow"
    connect_retries: int = Field(default=3, ge=0)

    # PLAINTEXT | SSL | SASL_PLAINTEXT | SASL_SSL
    security_protocol: str = "PLAINTEXT"
    # GSSAPI | PLAIN | SCRAM-SHA-256 | SCRAM-SHA-512
    sasl_mechanism: str = "GSSAPI"
    sasl_username: str | None = None
    sasl_password: str | None = None
    sasl_kerberos_service_name: str = "kafka"
    sasl_kerberos_principal: str | None = None
    sasl_kerberos_keytab: str | None = None
    sasl_kerberos_kinit_cmd: str | None = None

    ssl_ca_location: str | None = None
    ssl_certificate_location: str | None = None
    ssl_key_location: str | None = None
    ssl_key_password: str | None = None
    ssl_endpoint_identification_algorithm: str = "https"

    meetings_topic: str = "completed-meetings"
    researches_topic: str = "completed-researches"
    source: str = "research_management_system"

    @property
    def broker_list(self) -> list[str]:
        return parse_brokers(self.brokers)

    @model_validator(mode="after")
    def _validate_enabled(self) -> "KafkaConfig":
        if self.enabled and not self.broker_list:
            raise ConfigurationError(
                "No valid Kafka brokers configured. Set KAFKA_BROKERS when KAFKA_ENABLED=true."
            )
        if self.enabled:
            for env_name, topic in (
                ("KAFKA_MEETINGS_TOPIC", self.meetings_topic),
                ("KAFKA_RESEARCHES_TOPIC", self.researches_topic),
            ):
                if not str(topic or "").strip():
                    raise ConfigurationError(f"{env_name} must not be empty when KAFKA_ENABLED=true.")
        return self

    def topics(self) -> dict[str, str]:
        return {"meeting": self.meetings_topic, "research": self.researches_topic}


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt: str = "%Y-%m-%d %H:%M:%S"
    console: bool = True
    file: str | None = None
    max_bytes: int = Field(default=10 * 1024 * 1024, ge=0)
    backup_count: int = Field(default=5, ge=0)


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=_ENV_FILES, env_file_encoding="utf-8", extra="ignore"
    )

    data_dir: str = "./data"
    log_dir: str = "./logs"
    upload_max_bytes: int = Field(default=500 * 1024 * 1024, ge=1)

    # Records (attachments / parent records)
    record_store_backend: str = "memory"  # "memory" | "redis"
    redis_url: str = "redis://localhost:6379"

    # Uploaded media
    object_store_backend: str = "local"  # "local" | "s3"

    # S3/MinIO
    s3_endpoint: str = "http://localhost:9000"
    s3_access_key: str = "minioadmin"
    s3_secret_key: str = "minioadmin"
    s3_bucket_name: str = "scribeflow"

    transcription: TranscriptionConfig = TranscriptionConfig()
    asr: ASRConfig = ASRConfig()
    kafka: KafkaConfig = KafkaConfig()

    # Logging
    logging: LoggingSettings = LoggingSettings()

    def model_post_init(self, __context: Any) -> None:
        # Apps run with a different CWD; always resolve relative paths under repo root.
        self.data_dir = _resolve_repo_path(self.data_dir)
        self.log_dir = _resolve_repo_path(self.log_dir)
        for value in (self.data_dir, self.log_dir):
            Path(value).mkdir(parents=True, exist_ok=True)

    def asr_config(self) -> dict[str, Any]:
        """Return an ASR config dict for the provider registry."""
        return self.asr.model_dump()
