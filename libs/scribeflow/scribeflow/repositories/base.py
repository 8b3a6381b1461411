"""Record store interface shared by the memory and Redis backends."""

from __future__ import annotations

import dataclasses
from abc import ABC, abstractmethod
from typing import Any, TypeVar

from scribeflow.exceptions import ConfigurationError
from scribeflow.models import Attachment, ParentRecord, ParentRef

T = TypeVar("T")

_READONLY_ATTACHMENT_FIELDS = frozenset({"id", "parent", "created_at"})
_READONLY_PARENT_FIELDS = frozenset({"ref"})


def apply_fields(obj: T, fields: dict[str, Any], *, readonly: frozenset[str] = frozenset()) -> T:
    """Return a copy of a dataclass record with `fields` replaced."""
    allowed = {f.name for f in dataclasses.fields(obj)} - set(readonly)  # type: ignore[arg-type]
    unknown = sorted(set(fields) - allowed)
    if unknown:
        raise ConfigurationError(f"cannot update fields on {type(obj).__name__}: {', '.join(unknown)}")
    return dataclasses.replace(obj, **fields)  # type: ignore[type-var]


def apply_attachment_fields(attachment: Attachment, fields: dict[str, Any]) -> Attachment:
    return apply_fields(attachment, fields, readonly=_READONLY_ATTACHMENT_FIELDS)


def apply_parent_fields(record: ParentRecord, fields: dict[str, Any]) -> ParentRecord:
    return apply_fields(record, fields, readonly=_READONLY_PARENT_FIELDS)


class RecordStore(ABC):
    """Persistence for attachments and the parent records that own them.

    Records returned by the store are detached copies; changes go through
    `update_attachment` / `update_parent` / `save_parent`.
    """

    @abstractmethod
    async def create_attachment(
        self,
        parent: ParentRef,
        *,
        original_name: str,
        object_path: str,
        file_name: str = "",
        file_size: int = 0,
        mime_type: str = "application/octet-stream",
    ) -> Attachment:
        """Create a pending attachment and return it with its new id."""

    @abstractmethod
    async def get_attachment(self, attachment_id: int) -> Attachment | None: ...

    @abstractmethod
    async def update_attachment(self, attachment_id: int, **fields: Any) -> Attachment | None:
        """Apply field changes; returns None when the attachment no longer exists."""

    @abstractmethod
    async def get_attachments(self, parent: ParentRef) -> list[Attachment]:
        """All attachments of a parent, ordered by id."""

    @abstractmethod
    async def delete_attachment(self, attachment_id: int) -> bool: ...

    @abstractmethod
    async def get_parent(self, parent: ParentRef) -> ParentRecord | None: ...

    @abstractmethod
    async def update_parent(self, parent: ParentRef, **fields: Any) -> ParentRecord | None:
        """Apply field changes; returns None when the parent does not exist."""

    @abstractmethod
    async def save_parent(self, record: ParentRecord) -> None:
        """Insert or replace a parent record."""

    async def close(self) -> None:
        return None
