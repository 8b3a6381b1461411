"""ScribeFlow exception hierarchy."""

from __future__ import annotations

from scribeflow.error_codes import ErrorCode


class ScribeFlowError(Exception):
    """Base error for ScribeFlow."""


class ConfigurationError(ScribeFlowError):
    """Raised when configuration or inputs are invalid."""


class NotFoundError(ScribeFlowError):
    """Raised when an attachment, parent record or stored object is missing."""


class AttachmentNotFoundError(NotFoundError):
    def __init__(self, attachment_id: int) -> None:
        super().__init__(f"attachment not found: {attachment_id}")
        self.attachment_id = attachment_id


class ParentNotFoundError(NotFoundError):
    def __init__(self, parent_key: str) -> None:
        super().__init__(f"parent record not found: {parent_key}")
        self.parent_key = parent_key


class ObjectNotFoundError(NotFoundError):
    def __init__(self, reference: str) -> None:
        super().__init__(f"object not found: {reference}")
        self.reference = reference


class StorageError(ScribeFlowError):
    """Raised when the object store fails for reasons other than a missing object."""


class ProviderError(ScribeFlowError):
    """Raised when an external provider call fails."""

    def __init__(
        self,
        provider: str,
        message: str,
        *,
        error_code: ErrorCode | str | None = None,
    ) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message
        self.error_code = error_code


class InvalidMediaError(ProviderError):
    """Raised when submitted files are not a supported audio/video type."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(provider, message, error_code=ErrorCode.INVALID_MEDIA)


class TransientOperationError(ScribeFlowError):
    """Any failure during fetch/transcribe; always consumes one retry."""

    def __init__(
        self,
        attachment_id: int,
        message: str,
        *,
        error_code: ErrorCode | str | None = None,
    ) -> None:
        super().__init__(f"attachment {attachment_id}: {message}")
        self.attachment_id = attachment_id
        self.message = message
        self.error_code = error_code


class RetryBudgetExhausted(ScribeFlowError):
    """Terminal: the attachment moves to `failed`. Recorded, never propagated."""

    def __init__(self, attachment_id: int, retry_count: int) -> None:
        super().__init__(f"attachment {attachment_id}: retry budget exhausted after {retry_count} attempts")
        self.attachment_id = attachment_id
        self.retry_count = retry_count


class DispatchUnavailableError(ScribeFlowError):
    """Raised when the broker client is disabled or not connected."""

    def __init__(self, state: str) -> None:
        super().__init__(f"event dispatcher unavailable (state={state})")
        self.state = state
