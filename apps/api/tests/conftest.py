from __future__ import annotations

import sys
import time
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from scribeflow.config import ASRConfig, KafkaConfig, Settings, TranscriptionConfig
from scribeflow.services import TranscriptionService, create_transcription_service

_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        data_dir=str(tmp_path / "data"),
        log_dir=str(tmp_path / "logs"),
        upload_max_bytes=1024,
        transcription=TranscriptionConfig(base_delay_s=0.0, batch_pause_s=0.0),
        asr=ASRConfig(provider="mock", mock_max_delay_s=0.0),
        kafka=KafkaConfig(enabled=False),
    )


@pytest.fixture()
def service(settings: Settings) -> TranscriptionService:
    return create_transcription_service(settings)


@pytest.fixture()
def app(settings: Settings, service: TranscriptionService) -> FastAPI:
    from routes.health import router as health_router
    from routes.transcriptions import router as transcriptions_router
    from routes.uploads import router as uploads_router

    test_app = FastAPI()
    test_app.state.settings = settings
    test_app.state.service = service
    test_app.include_router(uploads_router)
    test_app.include_router(transcriptions_router)
    test_app.include_router(health_router)
    return test_app


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    # One portal (event loop) for the whole test so background batches keep running.
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def wait_until() -> Callable[[Callable[[], bool]], None]:
    def _wait(predicate: Callable[[], bool], timeout_s: float = 5.0) -> None:
        deadline = time.monotonic() + timeout_s
        while time.monotonic() < deadline:
            if predicate():
                return
            time.sleep(0.02)
        raise AssertionError("condition not met in time")

    return _wait
