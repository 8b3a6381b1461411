"""S3/MinIO object store implementation."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from scribeflow.exceptions import ObjectNotFoundError, StorageError
from scribeflow.storage.object_store import ObjectStore, new_upload_reference, object_key

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", "") or "")


class S3ObjectStore(ObjectStore):
    """S3/MinIO object store for production."""

    def __init__(
        self,
        endpoint: str,
        access_key: str,
        secret_key: str,
        bucket: str,
        *,
        client: Any | None = None,
    ) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.access_key = access_key
        self.secret_key = secret_key
        self.bucket = bucket

        self._client: Any | None = client
        self._bucket_ready: bool = False
        self._bucket_lock = asyncio.Lock()

    def _ensure_client(self) -> Any:
        if self._client is not None:
            return self._client

        import boto3

        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint,
            aws_access_key_id=self.access_key,
            aws_secret_access_key=self.secret_key,
            config=Config(s3={"addressing_style": "path"}),
        )
        return self._client

    async def _ensure_bucket(self) -> None:
        if self._bucket_ready:
            return

        async with self._bucket_lock:
            if self._bucket_ready:
                return

            client = self._ensure_client()

            def _head_or_create() -> None:
                try:
                    client.head_bucket(Bucket=self.bucket)
                    return
                except ClientError as exc:
                    if _error_code(exc) not in {"404", "NoSuchBucket", "NotFound"}:
                        raise

                client.create_bucket(Bucket=self.bucket)

            try:
                await asyncio.to_thread(_head_or_create)
            except (ClientError, BotoCoreError) as exc:
                raise StorageError(f"Failed to ensure S3 bucket {self.bucket!r}: {exc}") from exc

            self._bucket_ready = True

    async def get_file_buffer(self, reference: str) -> bytes:
        key = object_key(reference)
        client = self._ensure_client()
        await self._ensure_bucket()

        def _get() -> bytes:
            resp = client.get_object(Bucket=self.bucket, Key=key)
            return bytes(resp["Body"].read())

        try:
            return await asyncio.to_thread(_get)
        except ClientError as exc:
            if _error_code(exc) in _NOT_FOUND_CODES:
                raise ObjectNotFoundError(reference) from exc
            raise StorageError(f"Failed to load S3 object {key!r}: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"Failed to load S3 object {key!r}: {exc}") from exc

    async def upload(self, data: bytes, name: str) -> str:
        reference = new_upload_reference()
        key = object_key(reference)
        client = self._ensure_client()
        await self._ensure_bucket()

        def _put() -> None:
            client.put_object(Bucket=self.bucket, Key=key, Body=data)

        try:
            await asyncio.to_thread(_put)
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"Failed to upload {name!r} to S3: {exc}") from exc
        logger.info("s3 object uploaded (name=%s, key=%s, bytes=%d)", name, key, len(data))
        return reference

    async def delete(self, reference: str) -> None:
        key = object_key(reference)
        client = self._ensure_client()
        await self._ensure_bucket()

        # delete_object succeeds for missing keys; head first so a missing
        # object fails the same way it does on the local backend.
        def _delete() -> None:
            client.head_object(Bucket=self.bucket, Key=key)
            client.delete_object(Bucket=self.bucket, Key=key)

        try:
            await asyncio.to_thread(_delete)
        except ClientError as exc:
            if _error_code(exc) in _NOT_FOUND_CODES:
                raise ObjectNotFoundError(reference) from exc
            raise StorageError(f"Failed to delete S3 object {key!r}: {exc}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"Failed to delete S3 object {key!r}: {exc}") from exc
        logger.info("s3 object deleted (key=%s)", key)

    async def exists(self, reference: str) -> bool:
        try:
            key = object_key(reference)
        except ObjectNotFoundError:
            return False
        client = self._ensure_client()
        await self._ensure_bucket()

        def _head() -> bool:
            try:
                client.head_object(Bucket=self.bucket, Key=key)
                return True
            except ClientError as exc:
                if _error_code(exc) in _NOT_FOUND_CODES:
                    return False
                raise

        try:
            return await asyncio.to_thread(_head)
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"Failed to check S3 object {key!r}: {exc}") from exc
