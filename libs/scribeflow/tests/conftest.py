from __future__ import annotations

import asyncio
import json
from collections import defaultdict
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

import pytest
import pytest_asyncio
from aiokafka.errors import KafkaConnectionError, KafkaTimeoutError
from tenacity import wait_none

from scribeflow.config import ASRConfig, KafkaConfig, Settings, TranscriptionConfig
from scribeflow.dispatch import EventDispatcher
from scribeflow.exceptions import ProviderError
from scribeflow.models import Attachment, ParentRecord, ParentRef
from scribeflow.pipeline.aggregator import CompletionAggregator
from scribeflow.pipeline.orchestrator import AttachmentOrchestrator
from scribeflow.pipeline.retry import RetryPolicy
from scribeflow.pipeline.scheduler import DelayedTaskScheduler
from scribeflow.providers.asr.base import MediaFile, TranscriptionBackend, TranscriptionResult
from scribeflow.repositories import InMemoryRecordStore
from scribeflow.storage import LocalObjectStore


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        data_dir=str(tmp_path / "data"),
        log_dir=str(tmp_path / "logs"),
        record_store_backend="memory",
        object_store_backend="local",
        transcription=TranscriptionConfig(max_retry_count=3, base_delay_s=0.0, batch_pause_s=0.0),
        asr=ASRConfig(provider="mock", mock_max_delay_s=0.0),
        kafka=KafkaConfig(enabled=False),
    )


class FakeProducer:
    """Stands in for AIOKafkaProducer."""

    def __init__(self, *, fail_starts: int = 0, fail_sends: bool = False, **kwargs: Any) -> None:
        self.kwargs = kwargs
        self.fail_starts = fail_starts
        self.fail_sends = fail_sends
        self.started = False
        self.stopped = False
        self.start_calls = 0
        self.sent: list[dict[str, Any]] = []

    async def start(self) -> None:
        self.start_calls += 1
        if self.fail_starts > 0:
            self.fail_starts -= 1
            raise KafkaConnectionError("broker unreachable")
        self.started = True

    async def stop(self) -> None:
        self.stopped = True

    async def send_and_wait(self, topic: str, value: bytes | None = None, key: bytes | None = None, headers=None):
        if self.fail_sends:
            raise KafkaTimeoutError()
        self.sent.append(
            {
                "topic": topic,
                "key": key.decode("utf-8") if key else None,
                "value": json.loads(value) if value else None,
                "headers": {k: v.decode("utf-8") for k, v in (headers or [])},
            }
        )


class ProducerFactory:
    def __init__(self, *, fail_starts: int = 0, fail_sends: bool = False) -> None:
        self.fail_starts = fail_starts
        self.fail_sends = fail_sends
        self.created: list[FakeProducer] = []

    def __call__(self, **kwargs: Any) -> FakeProducer:
        # Every connection attempt builds a fresh producer; failures are shared.
        producer = FakeProducer(fail_starts=0, fail_sends=self.fail_sends, **kwargs)
        if self.fail_starts > 0:
            self.fail_starts -= 1
            producer.fail_starts = 1
        self.created.append(producer)
        return producer

    @property
    def sent(self) -> list[dict[str, Any]]:
        return [m for p in self.created for m in p.sent]


def enabled_kafka_config(**overrides: Any) -> KafkaConfig:
    values: dict[str, Any] = {"enabled": True, "brokers": "broker-1:9092,broker-2:9092", "connect_retries": 3}
    values.update(overrides)
    return KafkaConfig(**values)


class ScriptedBackend(TranscriptionBackend):
    """Fails a configured number of times per file name, then succeeds."""

    name = "scripted"

    def __init__(
        self,
        *,
        fail_times: dict[str, int] | None = None,
        always_fail: set[str] | None = None,
        delay_s: float = 0.0,
    ) -> None:
        self.fail_times = dict(fail_times or {})
        self.always_fail = set(always_fail or set())
        self.delay_s = delay_s
        self.calls: list[str] = []

    async def transcribe(self, files: list[MediaFile]) -> TranscriptionResult:
        name = files[0].name
        self.calls.append(name)
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if name in self.always_fail:
            raise ProviderError(self.name, "backend unavailable")
        remaining = self.fail_times.get(name, 0)
        if remaining > 0:
            self.fail_times[name] = remaining - 1
            raise ProviderError(self.name, "backend unavailable")
        return TranscriptionResult(text=f"transcript of {name}", processing_time_s=0.0, file_count=1)


@dataclass
class Harness:
    records: InMemoryRecordStore
    store: LocalObjectStore
    backend: ScriptedBackend
    producers: ProducerFactory
    dispatcher: EventDispatcher
    aggregator: CompletionAggregator
    scheduler: DelayedTaskScheduler
    orchestrator: AttachmentOrchestrator
    parents: dict[str, ParentRecord] = field(default_factory=dict)

    async def add_parent(self, entity_type: str = "meeting", parent_id: int = 1, **attributes: Any) -> ParentRef:
        ref = ParentRef.parse(entity_type, parent_id)
        record = ParentRecord(ref=ref, status="Done", attributes=dict(attributes))
        await self.records.save_parent(record)
        return ref

    async def add_attachment(self, parent: ParentRef, name: str, data: bytes = b"RIFF....WAVE") -> Attachment:
        reference = await self.store.upload(data, name)
        return await self.records.create_attachment(
            parent,
            original_name=name,
            object_path=reference,
            file_name=name,
            file_size=len(data),
            mime_type="audio/wav",
        )

    @property
    def events(self) -> list[dict[str, Any]]:
        return self.producers.sent


@pytest_asyncio.fixture
async def harness(tmp_path) -> AsyncIterator[Harness]:
    records = InMemoryRecordStore()
    store = LocalObjectStore(str(tmp_path / "data"))
    backend = ScriptedBackend()
    producers = ProducerFactory()
    dispatcher = EventDispatcher(enabled_kafka_config(), producer_factory=producers, connect_wait=wait_none())
    await dispatcher.start()
    aggregator = CompletionAggregator(records, dispatcher)
    scheduler = DelayedTaskScheduler()
    orchestrator = AttachmentOrchestrator(
        records,
        store,
        backend,
        aggregator,
        policy=RetryPolicy(max_retry_count=3, base_delay_s=0.0),
        scheduler=scheduler,
        batch_pause_s=0.0,
    )
    h = Harness(
        records=records,
        store=store,
        backend=backend,
        producers=producers,
        dispatcher=dispatcher,
        aggregator=aggregator,
        scheduler=scheduler,
        orchestrator=orchestrator,
    )
    try:
        yield h
    finally:
        await scheduler.shutdown()
        await dispatcher.stop()


class FakeRedis:
    def __init__(self) -> None:
        self._kv: dict[str, str] = {}
        self._sets: dict[str, set[str]] = defaultdict(set)
        self.closed = False

    async def get(self, key: str) -> str | None:
        return self._kv.get(str(key))

    async def set(self, key: str, value: str, *, ex: int | None = None) -> bool:  # noqa: ARG002
        self._kv[str(key)] = str(value)
        return True

    async def incr(self, key: str) -> int:
        value = int(self._kv.get(str(key), "0")) + 1
        self._kv[str(key)] = str(value)
        return value

    async def delete(self, key: str) -> int:
        existed = str(key) in self._kv
        self._kv.pop(str(key), None)
        return 1 if existed else 0

    async def sadd(self, key: str, *values: str) -> int:
        s = self._sets[str(key)]
        before = len(s)
        for v in values:
            s.add(str(v))
        return len(s) - before

    async def smembers(self, key: str) -> set[str]:
        return set(self._sets.get(str(key), set()))

    async def srem(self, key: str, *values: str) -> int:
        s = self._sets.get(str(key), set())
        removed = 0
        for v in values:
            if str(v) in s:
                s.remove(str(v))
                removed += 1
        return removed

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture()
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture()
def make_producers() -> type[ProducerFactory]:
    return ProducerFactory


@pytest.fixture()
def make_kafka_config():
    return enabled_kafka_config


@pytest.fixture()
def make_backend() -> type[ScriptedBackend]:
    return ScriptedBackend
