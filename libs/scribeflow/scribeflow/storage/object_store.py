"""Object store interface and local implementation."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from uuid import uuid4

from scribeflow.exceptions import ObjectNotFoundError

logger = logging.getLogger(__name__)

OBJECT_PREFIX = "/objects/"
UPLOADS_DIR = "uploads"


def new_upload_reference() -> str:
    return f"{OBJECT_PREFIX}{UPLOADS_DIR}/{uuid4().hex}"


def object_key(reference: str) -> str:
    """Map `/objects/<key>` to `<key>`; anything else does not resolve."""
    ref = str(reference or "")
    if not ref.startswith(OBJECT_PREFIX):
        raise ObjectNotFoundError(ref)
    key = ref[len(OBJECT_PREFIX) :].strip("/")
    if not key or any(part in {"", ".", ".."} for part in key.split("/")):
        raise ObjectNotFoundError(ref)
    return key


class ObjectStore(ABC):
    """Stored-file access used by the orchestrator.

    Every backend raises `ObjectNotFoundError` for references that do not
    resolve, so callers never need to know which backend is active.
    """

    @abstractmethod
    async def get_file_buffer(self, reference: str) -> bytes:
        """Load the whole object into memory."""

    @abstractmethod
    async def upload(self, data: bytes, name: str) -> str:
        """Store bytes and return the new object reference."""

    @abstractmethod
    async def delete(self, reference: str) -> None:
        """Delete an object."""

    @abstractmethod
    async def exists(self, reference: str) -> bool:
        """Return True when the reference resolves to an object."""


class LocalObjectStore(ObjectStore):
    """Local filesystem object store for development."""

    def __init__(self, base_dir: str) -> None:
        self.base_dir = Path(base_dir)

    def _path(self, reference: str) -> Path:
        return self.base_dir / "objects" / object_key(reference)

    async def get_file_buffer(self, reference: str) -> bytes:
        path = self._path(reference)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as exc:
            raise ObjectNotFoundError(reference) from exc

    async def upload(self, data: bytes, name: str) -> str:
        reference = new_upload_reference()
        path = self._path(reference)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

        await asyncio.to_thread(_write)
        logger.info("object uploaded (name=%s, reference=%s, bytes=%d)", name, reference, len(data))
        return reference

    async def delete(self, reference: str) -> None:
        path = self._path(reference)
        if not await asyncio.to_thread(path.is_file):
            raise ObjectNotFoundError(reference)
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError as exc:
            raise ObjectNotFoundError(reference) from exc
        logger.info("object deleted (reference=%s)", reference)

    async def exists(self, reference: str) -> bool:
        try:
            path = self._path(reference)
        except ObjectNotFoundError:
            return False
        return await asyncio.to_thread(path.is_file)
