"""Per-attachment retry budget and backoff."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from scribeflow.config import TranscriptionConfig
from scribeflow.exceptions import ConfigurationError

BackoffStrategy = Literal["linear", "exponential"]


@dataclass(frozen=True)
class RetryPolicy:
    """`retry_count` is the number of failed attempts so far.

    linear:      delay = base × n
    exponential: delay = base × 2^(n-1)
    """

    max_retry_count: int = 3
    base_delay_s: float = 5.0
    strategy: BackoffStrategy = "linear"

    def __post_init__(self) -> None:
        if self.max_retry_count < 1:
            raise ConfigurationError("max_retry_count must be >= 1")
        if self.base_delay_s < 0:
            raise ConfigurationError("base_delay_s must be >= 0")
        if self.strategy not in ("linear", "exponential"):
            raise ConfigurationError(f"unknown backoff strategy: {self.strategy!r}")

    @classmethod
    def from_config(cls, config: TranscriptionConfig) -> "RetryPolicy":
        return cls(
            max_retry_count=int(config.max_retry_count),
            base_delay_s=float(config.base_delay_s),
            strategy=config.backoff,  # type: ignore[arg-type]
        )

    def should_retry(self, retry_count: int) -> bool:
        return int(retry_count) < self.max_retry_count

    def delay_for(self, retry_count: int) -> float:
        n = max(1, int(retry_count))
        if self.strategy == "exponential":
            return self.base_delay_s * (2 ** (n - 1))
        return self.base_delay_s * n
