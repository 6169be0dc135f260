"""
Custom exception classes for the application.
"""

from typing import Any


class AppException(Exception):
    """Base exception for application errors."""

    def __init__(
        self,
        message: str,
        code: str = "APP_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize application exception.

        Args:
            message: Human-readable error message.
            code: Machine-readable error code.
            details: Additional error details.
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class MalformedCallbackPayload(AppException):
    """Raised when a callback body cannot be read as a finished recording."""

    def __init__(
        self,
        message: str = "Callback payload is not a recording result",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, "MALFORMED_CALLBACK_PAYLOAD", details)


class StoreUnavailable(AppException):
    """Raised when the participant store cannot be reached."""

    def __init__(
        self,
        message: str = "Participant store unavailable",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, "STORE_UNAVAILABLE", details)


class CatalogLoadError(AppException):
    """Raised when the question file cannot be read or parsed."""

    def __init__(
        self,
        message: str = "Question catalog could not be loaded",
        code: str = "CATALOG_LOAD_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class CatalogEmpty(CatalogLoadError):
    """Raised when the question catalog has no entries."""

    def __init__(
        self,
        message: str = "Question catalog is empty",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, "CATALOG_EMPTY", details)


class RecordingNotFound(AppException):
    """Raised when the provider has no such recording."""

    def __init__(
        self,
        message: str = "Recording not found",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, "RECORDING_NOT_FOUND", details)


class RecordingFetchError(AppException):
    """Raised when the provider recording download fails."""

    def __init__(
        self,
        message: str = "Recording could not be fetched",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, "RECORDING_FETCH_ERROR", details)


class ParticipantNotFound(AppException):
    """Raised when an operation targets a call id with no participant."""

    def __init__(
        self,
        call_id: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            f"No participant for call {call_id}",
            "PARTICIPANT_NOT_FOUND",
            {"call_id": call_id, **(details or {})},
        )
        self.call_id = call_id
