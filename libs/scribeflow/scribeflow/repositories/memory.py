"""In-memory record store (development, tests)."""

from __future__ import annotations

import copy
import itertools
from typing import Any

from scribeflow.models import Attachment, ParentRecord, ParentRef
from scribeflow.repositories.base import RecordStore, apply_attachment_fields, apply_parent_fields


class InMemoryRecordStore(RecordStore):
    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._attachments: dict[int, Attachment] = {}
        self._parents: dict[str, ParentRecord] = {}

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
        attachment = Attachment(
            id=next(self._ids),
            parent=parent,
            original_name=original_name,
            object_path=object_path,
            file_name=file_name or original_name,
            file_size=int(file_size),
            mime_type=mime_type,
        )
        self._attachments[attachment.id] = attachment
        return copy.deepcopy(attachment)

    async def get_attachment(self, attachment_id: int) -> Attachment | None:
        attachment = self._attachments.get(int(attachment_id))
        return copy.deepcopy(attachment) if attachment is not None else None

    async def update_attachment(self, attachment_id: int, **fields: Any) -> Attachment | None:
        current = self._attachments.get(int(attachment_id))
        if current is None:
            return None
        updated = apply_attachment_fields(current, fields)
        self._attachments[updated.id] = updated
        return copy.deepcopy(updated)

    async def get_attachments(self, parent: ParentRef) -> list[Attachment]:
        return [
            copy.deepcopy(a)
            for _, a in sorted(self._attachments.items())
            if a.parent == parent
        ]

    async def delete_attachment(self, attachment_id: int) -> bool:
        return self._attachments.pop(int(attachment_id), None) is not None

    async def get_parent(self, parent: ParentRef) -> ParentRecord | None:
        record = self._parents.get(parent.key)
        return copy.deepcopy(record) if record is not None else None

    async def update_parent(self, parent: ParentRef, **fields: Any) -> ParentRecord | None:
        current = self._parents.get(parent.key)
        if current is None:
            return None
        updated = apply_parent_fields(current, fields)
        self._parents[parent.key] = updated
        return copy.deepcopy(updated)

    async def save_parent(self, record: ParentRecord) -> None:
        self._parents[record.ref.key] = copy.deepcopy(record)
