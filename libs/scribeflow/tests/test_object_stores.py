from __future__ import annotations

import asyncio
import io
from pathlib import Path

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError, NoCredentialsError

from scribeflow.exceptions import ConfigurationError, ObjectNotFoundError, StorageError
from scribeflow.storage import LocalObjectStore, S3ObjectStore, get_object_store
from scribeflow.storage.object_store import object_key


@pytest.mark.asyncio
async def test_local_store_roundtrip_and_delete(tmp_path: Path) -> None:
    store = LocalObjectStore(str(tmp_path))
    ref = await store.upload(b"audio-bytes", "a.mp3")
    assert ref.startswith("/objects/uploads/")
    assert await store.exists(ref)
    assert await store.get_file_buffer(ref) == b"audio-bytes"

    await store.delete(ref)
    assert not await store.exists(ref)
    with pytest.raises(ObjectNotFoundError):
        await store.get_file_buffer(ref)
    with pytest.raises(ObjectNotFoundError):
        await store.delete(ref)


@pytest.mark.asyncio
async def test_local_store_runs_file_io_in_threads(tmp_path: Path, monkeypatch) -> None:
    offloaded: list[str] = []
    real_to_thread = asyncio.to_thread

    async def _tracking_to_thread(func, /, *args, **kwargs):
        offloaded.append(getattr(func, "__name__", repr(func)))
        return await real_to_thread(func, *args, **kwargs)

    monkeypatch.setattr("scribeflow.storage.object_store.asyncio.to_thread", _tracking_to_thread)
    store = LocalObjectStore(str(tmp_path))

    ref = await store.upload(b"audio-bytes", "a.mp3")
    assert await store.get_file_buffer(ref) == b"audio-bytes"
    await store.delete(ref)

    assert offloaded == ["_write", "read_bytes", "is_file", "unlink"]


@pytest.mark.parametrize("reference", ["", "uploads/x", "/objects/", "/objects/../secret", "/objects/a//b"])
def test_malformed_references_do_not_resolve(reference: str) -> None:
    with pytest.raises(ObjectNotFoundError):
        object_key(reference)


@pytest.mark.asyncio
async def test_local_store_missing_reference_raises_not_found(tmp_path: Path) -> None:
    store = LocalObjectStore(str(tmp_path))
    with pytest.raises(ObjectNotFoundError):
        await store.get_file_buffer("/objects/uploads/does-not-exist")
    assert not await store.exists("not-a-reference")


def _client_error(code: str, op: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, op)


class _FakeS3Client:
    def __init__(self, *, bucket_exists: bool = True) -> None:
        self.bucket_exists = bucket_exists
        self.objects: dict[str, bytes] = {}
        self.created_buckets: list[str] = []
        self.fail_get_with: str | None = None
        self.transport_error: Exception | None = None

    def head_bucket(self, Bucket: str) -> None:  # noqa: N803
        if not self.bucket_exists:
            raise _client_error("404", "HeadBucket")

    def create_bucket(self, Bucket: str) -> None:  # noqa: N803
        self.created_buckets.append(Bucket)
        self.bucket_exists = True

    def put_object(self, Bucket: str, Key: str, Body: bytes) -> None:  # noqa: N803
        if self.transport_error:
            raise self.transport_error
        self.objects[Key] = bytes(Body)

    def get_object(self, Bucket: str, Key: str) -> dict:  # noqa: N803
        if self.transport_error:
            raise self.transport_error
        if self.fail_get_with:
            raise _client_error(self.fail_get_with, "GetObject")
        if Key not in self.objects:
            raise _client_error("NoSuchKey", "GetObject")
        return {"Body": io.BytesIO(self.objects[Key])}

    def head_object(self, Bucket: str, Key: str) -> None:  # noqa: N803
        if self.transport_error:
            raise self.transport_error
        if Key not in self.objects:
            raise _client_error("404", "HeadObject")

    def delete_object(self, Bucket: str, Key: str) -> None:  # noqa: N803
        self.objects.pop(Key, None)


def _s3(client: _FakeS3Client) -> S3ObjectStore:
    return S3ObjectStore("http://minio:9000", "ak", "sk", "media", client=client)


@pytest.mark.asyncio
async def test_s3_store_creates_bucket_and_roundtrips() -> None:
    client = _FakeS3Client(bucket_exists=False)
    store = _s3(client)

    ref = await store.upload(b"xyz", "clip.wav")
    assert client.created_buckets == ["media"]
    assert await store.exists(ref)
    assert await store.get_file_buffer(ref) == b"xyz"

    await store.delete(ref)
    assert not await store.exists(ref)


@pytest.mark.asyncio
async def test_s3_store_maps_missing_objects_like_local_store() -> None:
    store = _s3(_FakeS3Client())
    with pytest.raises(ObjectNotFoundError):
        await store.get_file_buffer("/objects/uploads/missing")
    with pytest.raises(ObjectNotFoundError):
        await store.delete("/objects/uploads/missing")


@pytest.mark.asyncio
async def test_s3_store_wraps_other_client_errors() -> None:
    client = _FakeS3Client()
    client.fail_get_with = "AccessDenied"
    store = _s3(client)
    with pytest.raises(StorageError):
        await store.get_file_buffer("/objects/uploads/any")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        EndpointConnectionError(endpoint_url="http://minio:9000"),
        NoCredentialsError(),
    ],
)
async def test_s3_store_wraps_transport_errors(error: Exception) -> None:
    client = _FakeS3Client()
    store = _s3(client)
    ref = await store.upload(b"xyz", "clip.wav")
    client.transport_error = error

    with pytest.raises(StorageError):
        await store.get_file_buffer(ref)
    with pytest.raises(StorageError):
        await store.upload(b"more", "next.wav")
    with pytest.raises(StorageError):
        await store.delete(ref)
    with pytest.raises(StorageError):
        await store.exists(ref)


def test_get_object_store_selects_backend(settings) -> None:
    assert isinstance(get_object_store(settings), LocalObjectStore)

    s3_settings = settings.model_copy(update={"object_store_backend": "s3"})
    assert isinstance(get_object_store(s3_settings), S3ObjectStore)

    bad = settings.model_copy(update={"object_store_backend": "ftp"})
    with pytest.raises(ConfigurationError):
        get_object_store(bad)
