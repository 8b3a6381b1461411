"""Attachment and parent record persistence backed by Redis."""

from __future__ import annotations

import json
from typing import Any

from redis.asyncio import Redis

from scribeflow.models import Attachment, ParentRecord, ParentRef
from scribeflow.repositories.base import RecordStore, apply_attachment_fields, apply_parent_fields


def _decode(raw: Any) -> str:
    if isinstance(raw, (bytes, bytearray)):
        return raw.decode("utf-8")
    return str(raw)


class RedisRecordStore(RecordStore):
    def __init__(self, redis_client: Redis, *, prefix: str = "scribeflow") -> None:
        self._redis = redis_client
        self._prefix = prefix

    def _seq_key(self) -> str:
        return f"{self._prefix}:attachment:seq"

    def _attachment_key(self, attachment_id: int) -> str:
        return f"{self._prefix}:attachment:{int(attachment_id)}"

    def _parent_key(self, parent: ParentRef) -> str:
        return f"{self._prefix}:parent:{parent.key}"

    def _parent_index_key(self, parent: ParentRef) -> str:
        return f"{self._prefix}:parent:{parent.key}:attachments"

    async def _save_attachment(self, attachment: Attachment) -> None:
        await self._redis.set(self._attachment_key(attachment.id), json.dumps(attachment.to_dict()))

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
        attachment_id = int(await self._redis.incr(self._seq_key()))
        attachment = Attachment(
            id=attachment_id,
            parent=parent,
            original_name=original_name,
            object_path=object_path,
            file_name=file_name or original_name,
            file_size=int(file_size),
            mime_type=mime_type,
        )
        await self._save_attachment(attachment)
        await self._redis.sadd(self._parent_index_key(parent), str(attachment_id))
        return attachment

    async def get_attachment(self, attachment_id: int) -> Attachment | None:
        raw = await self._redis.get(self._attachment_key(attachment_id))
        if not raw:
            return None
        return Attachment.from_dict(json.loads(raw))

    async def update_attachment(self, attachment_id: int, **fields: Any) -> Attachment | None:
        current = await self.get_attachment(attachment_id)
        if current is None:
            return None
        updated = apply_attachment_fields(current, fields)
        await self._save_attachment(updated)
        return updated

    async def get_attachments(self, parent: ParentRef) -> list[Attachment]:
        members = await self._redis.smembers(self._parent_index_key(parent))
        out: list[Attachment] = []
        for attachment_id in sorted(int(_decode(m)) for m in members):
            attachment = await self.get_attachment(attachment_id)
            if attachment is not None:
                out.append(attachment)
        return out

    async def delete_attachment(self, attachment_id: int) -> bool:
        current = await self.get_attachment(attachment_id)
        if current is None:
            return False
        await self._redis.srem(self._parent_index_key(current.parent), str(current.id))
        removed = await self._redis.delete(self._attachment_key(current.id))
        return bool(removed)

    async def get_parent(self, parent: ParentRef) -> ParentRecord | None:
        raw = await self._redis.get(self._parent_key(parent))
        if not raw:
            return None
        return ParentRecord.from_dict(json.loads(raw))

    async def update_parent(self, parent: ParentRef, **fields: Any) -> ParentRecord | None:
        current = await self.get_parent(parent)
        if current is None:
            return None
        updated = apply_parent_fields(current, fields)
        await self.save_parent(updated)
        return updated

    async def save_parent(self, record: ParentRecord) -> None:
        await self._redis.set(self._parent_key(record.ref), json.dumps(record.to_dict()))

    async def close(self) -> None:
        await self._redis.aclose()
