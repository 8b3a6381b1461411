"""Record store layer (attachments and parent records)."""

import logging

from scribeflow.config import Settings
from scribeflow.exceptions import ConfigurationError
from scribeflow.repositories.base import RecordStore
from scribeflow.repositories.memory import InMemoryRecordStore

logger = logging.getLogger(__name__)


def get_record_store(settings: Settings) -> RecordStore:
    backend = str(getattr(settings, "record_store_backend", "memory") or "memory").strip().lower()
    if backend == "redis":
        from redis.asyncio import Redis

        from scribeflow.repositories.redis_store import RedisRecordStore

        logger.info("using redis record store (url=%s)", settings.redis_url)
        return RedisRecordStore(Redis.from_url(settings.redis_url, decode_responses=True))
    if backend == "memory":
        logger.info("using in-memory record store")
        return InMemoryRecordStore()
    raise ConfigurationError(f"Unknown record store backend: {backend!r} (expected: memory/redis)")


__all__ = ["InMemoryRecordStore", "RecordStore", "get_record_store"]
