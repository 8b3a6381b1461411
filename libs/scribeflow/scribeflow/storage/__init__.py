"""Object storage backends for uploaded media."""

import logging

from scribeflow.config import Settings
from scribeflow.exceptions import ConfigurationError
from scribeflow.storage.object_store import LocalObjectStore, ObjectStore
from scribeflow.storage.s3_store import S3ObjectStore

logger = logging.getLogger(__name__)


def get_object_store(settings: Settings) -> ObjectStore:
    backend = str(getattr(settings, "object_store_backend", "local") or "local").strip().lower()
    if backend == "s3":
        logger.info("using s3 object store (endpoint=%s, bucket=%s)", settings.s3_endpoint, settings.s3_bucket_name)
        return S3ObjectStore(
            endpoint=settings.s3_endpoint,
            access_key=settings.s3_access_key,
            secret_key=settings.s3_secret_key,
            bucket=settings.s3_bucket_name,
        )
    if backend == "local":
        logger.info("using local object store (data_dir=%s)", settings.data_dir)
        return LocalObjectStore(settings.data_dir)
    raise ConfigurationError(f"Unknown object store backend: {backend!r} (expected: local/s3)")


__all__ = ["LocalObjectStore", "ObjectStore", "S3ObjectStore", "get_object_store"]
