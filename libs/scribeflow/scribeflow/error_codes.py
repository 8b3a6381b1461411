"""Canonical error codes surfaced to API/UI."""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    UNKNOWN = "UNKNOWN"
    INVALID_MEDIA = "INVALID_MEDIA"

    STORAGE_NOT_FOUND = "STORAGE_NOT_FOUND"
    STORAGE_FAILED = "STORAGE_FAILED"
    ASR_FAILED = "ASR_FAILED"
    RETRY_EXHAUSTED = "RETRY_EXHAUSTED"
