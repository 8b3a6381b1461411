"""Logging initialization helpers."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from scribeflow.config import Settings

_ROOT_LOGGER = "scribeflow"


def _handlers(settings: Settings, level: int) -> list[logging.Handler]:
    formatter = logging.Formatter(
        fmt=str(settings.logging.format),
        datefmt=str(settings.logging.datefmt),
    )
    handlers: list[logging.Handler] = []
    if settings.logging.console:
        handlers.append(logging.StreamHandler())

    if settings.logging.file:
        file_path = Path(str(settings.logging.file))
        if not file_path.is_absolute():
            file_path = Path(settings.log_dir) / file_path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                file_path,
                maxBytes=int(settings.logging.max_bytes),
                backupCount=int(settings.logging.backup_count),
                encoding="utf-8",
            )
        )

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers


def setup_logging(settings: Settings, *, force: bool = False) -> logging.Logger:
    """Configure the `scribeflow` logger tree once.

    Framework loggers (uvicorn, aiokafka) are left alone. Pass `force=True`
    to rebuild handlers after settings change (scripts, tests).
    """
    logger = logging.getLogger(_ROOT_LOGGER)
    if getattr(logger, "_scribeflow_configured", False) and not force:
        return logger

    level_name = str(settings.logging.level or "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    for old in list(logger.handlers):
        old.close()
    logger.setLevel(level)
    logger.handlers = _handlers(settings, level)
    logger.propagate = False
    setattr(logger, "_scribeflow_configured", True)
    return logger
