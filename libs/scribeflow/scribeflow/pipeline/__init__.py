"""Transcription pipeline (orchestration, aggregation, retries).

Keep imports lazy so `scribeflow.pipeline.retry` can be imported without
pulling in the dispatcher and its broker client.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from scribeflow.pipeline.aggregator import CompletionAggregator
    from scribeflow.pipeline.orchestrator import AttachmentOrchestrator

__all__ = ["AttachmentOrchestrator", "CompletionAggregator"]


def __getattr__(name: str) -> Any:
    if name == "AttachmentOrchestrator":
        from scribeflow.pipeline.orchestrator import AttachmentOrchestrator

        return AttachmentOrchestrator
    if name == "CompletionAggregator":
        from scribeflow.pipeline.aggregator import CompletionAggregator

        return CompletionAggregator
    raise AttributeError(name)
