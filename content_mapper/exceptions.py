"""Custom exceptions and error handling."""

from typing import Any


class ContentMapperError(Exception):
    """Base exception for the content mapper."""

    def __init__(
        self,
        message: str,
        code: str = "error",
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {"code": self.code, "message": self.message, "details": self.details}


class ValidationError(ContentMapperError):
    """User input failed validation before any model call."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(
            message=message,
            code="validation_error",
            details=details,
        )


class ModelProviderError(ContentMapperError):
    """The model provider could not be reached or rejected the request."""

    def __init__(
        self,
        message: str,
        provider: str = "",
        error_type: str = "api_error",
        retryable: bool = False,
    ):
        self.provider = provider
        self.error_type = error_type
        self.retryable = retryable
        super().__init__(
            message=message,
            code="model_provider_error",
            details={"provider": provider, "error_type": error_type, "retryable": retryable},
        )


class InvalidModelResponseError(ContentMapperError):
    """The model answered, but not with the expected structured output."""

    def __init__(
        self,
        message: str,
        errors: list[dict[str, Any]] | None = None,
        raw_content: str = "",
    ):
        self.errors = errors or []
        self.raw_content = raw_content
        super().__init__(
            message=message,
            code="invalid_model_response",
            details={"errors": self.errors},
        )


class StorageError(ContentMapperError):
    """A storage backend failed to read or write."""

    def __init__(self, message: str, key: str | None = None):
        details = {"key": key} if key else {}
        super().__init__(
            message=message,
            code="storage_error",
            details=details,
        )


class StorageQuotaExceededError(StorageError):
    """A write would exceed the backend's capacity."""


class ShortcutConflictError(ContentMapperError):
    """Two enabled shortcuts are bound to the same chord."""

    def __init__(self, chord: str, descriptions: list[str]):
        super().__init__(
            message=f"Shortcut chord '{chord}' is bound more than once: {', '.join(descriptions)}",
            code="shortcut_conflict",
            details={"chord": chord, "descriptions": descriptions},
        )
