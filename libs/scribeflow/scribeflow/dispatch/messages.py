"""Completion event payloads."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

from scribeflow.models import ParentRecord

CompletionAction = Literal["completed", "updated"]

# Free-text attributes whose lengths are reported next to `full_text`.
CONTENT_FIELDS: tuple[str, ...] = ("notes", "description", "brief")


@dataclass(frozen=True)
class EventMessage:
    topic: str
    key: str
    value: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)

    def value_bytes(self) -> bytes:
        return json.dumps(self.value, ensure_ascii=False, default=str).encode("utf-8")

    def key_bytes(self) -> bytes:
        return self.key.encode("utf-8")

    def header_items(self) -> list[tuple[str, bytes]]:
        return [(k, v.encode("utf-8")) for k, v in self.headers.items()]


def _content_lengths(parent: ParentRecord) -> dict[str, int]:
    lengths = {"full_text": len(parent.full_text or "")}
    for name in CONTENT_FIELDS:
        value = parent.attributes.get(name)
        if isinstance(value, str):
            lengths[name] = len(value)
    return lengths


def build_completion_message(
    parent: ParentRecord,
    action: CompletionAction,
    topics: dict[str, str],
    *,
    source: str = "research_management_system",
    now: datetime | None = None,
) -> EventMessage:
    """Snapshot a parent record into the completion event envelope."""
    entity = parent.entity_type.value
    topic = topics.get(entity)
    if not topic:
        raise KeyError(f"no topic configured for entity type {entity!r}")

    data: dict[str, Any] = dict(parent.attributes)
    data.update({"id": parent.id, "status": parent.status, "full_text": parent.full_text})
    metadata: dict[str, Any] = {}
    headers: dict[str, str] = {
        "event-type": f"{entity}_{action}",
        "source": source,
        "entity-type": entity,
    }
    for name, records in sorted(parent.links.items()):
        data[name] = [dict(r) for r in records]
        metadata[f"total_{name}"] = len(records)
        metadata[f"has_{name}"] = bool(records)
        headers[name.replace("_", "-")] = str(len(records))
        headers[f"has-{name.replace('_', '-')}"] = "true" if records else "false"
    metadata["content_length"] = _content_lengths(parent)

    timestamp = (now or datetime.now(tz=timezone.utc)).isoformat()
    value = {
        "id": parent.id,
        "type": entity,
        "status": parent.status,
        "action": action,
        "data": data,
        "metadata": metadata,
        "timestamp": timestamp,
    }
    return EventMessage(topic=topic, key=parent.ref.key, value=value, headers=headers)
