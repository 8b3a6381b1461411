"""Parent record model (the entity that owns attachments)."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EntityType(str, Enum):
    MEETING = "meeting"
    RESEARCH = "research"


class SummarizationStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class ParentRef:
    entity_type: EntityType
    id: int

    @property
    def key(self) -> str:
        return f"{self.entity_type.value}-{self.id}"

    def to_dict(self) -> dict[str, Any]:
        return {"entity_type": self.entity_type.value, "id": int(self.id)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ParentRef":
        return cls(
            entity_type=EntityType(str(data.get("entity_type") or EntityType.MEETING.value)),
            id=int(data.get("id") or 0),
        )

    @classmethod
    def parse(cls, entity_type: str, parent_id: int | str) -> "ParentRef":
        return cls(entity_type=EntityType(str(entity_type).strip().lower()), id=int(parent_id))


@dataclass
class ParentRecord:
    """Subset of the parent entity the transcription core reads and writes.

    `full_text` is the aggregate transcript field and only ever grows.
    `links` holds named lists of linked auxiliary records (e.g. `jtbds`,
    `related_research`) used for the completion event snapshot.
    """

    ref: ParentRef
    status: str = ""
    full_text: str = ""
    summarization_status: SummarizationStatus = SummarizationStatus.NOT_STARTED
    dispatch_count: int = 0
    attributes: dict[str, Any] = field(default_factory=dict)
    links: dict[str, list[dict[str, Any]]] = field(default_factory=dict)

    @property
    def id(self) -> int:
        return self.ref.id

    @property
    def entity_type(self) -> EntityType:
        return self.ref.entity_type

    def to_dict(self) -> dict[str, Any]:
        return {
            "ref": self.ref.to_dict(),
            "status": self.status,
            "full_text": self.full_text,
            "summarization_status": self.summarization_status.value,
            "dispatch_count": int(self.dispatch_count),
            "attributes": dict(self.attributes),
            "links": {k: list(v) for k, v in self.links.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ParentRecord":
        links_raw = data.get("links") or {}
        return cls(
            ref=ParentRef.from_dict(dict(data.get("ref") or {})),
            status=str(data.get("status") or ""),
            full_text=str(data.get("full_text") or ""),
            summarization_status=SummarizationStatus(
                str(data.get("summarization_status") or SummarizationStatus.NOT_STARTED.value)
            ),
            dispatch_count=int(data.get("dispatch_count") or 0),
            attributes=dict(data.get("attributes") or {}),
            links={
                str(k): [dict(x) for x in v if isinstance(x, dict)]
                for k, v in links_raw.items()
                if isinstance(v, list)
            },
        )
