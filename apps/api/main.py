"""ScribeFlow API"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from scribeflow.config import Settings
from scribeflow.services import create_transcription_service
from scribeflow.utils.logging_setup import setup_logging
from routes.health import router as health_router
from routes.transcriptions import router as transcriptions_router
from routes.uploads import router as uploads_router

settings = Settings()
setup_logging(settings)
logger = logging.getLogger("scribeflow.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    service = create_transcription_service(settings)
    app.state.settings = settings
    app.state.service = service
    await service.startup()
    logger.info(
        "API starting (asr=%s, object_store=%s, records=%s, kafka=%s)",
        settings.asr.provider,
        settings.object_store_backend,
        settings.record_store_backend,
        service.dispatcher.state.value,
    )
    try:
        yield
    finally:
        await service.shutdown()


app = FastAPI(
    title="ScribeFlow API",
    description="Attachment transcription and completion events",
    version="0.1.0",
    lifespan=lifespan,
)


app.include_router(uploads_router)
app.include_router(transcriptions_router)
app.include_router(health_router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok"}
