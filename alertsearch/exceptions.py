"""Application exception hierarchy.

All custom exceptions inherit from AlertSearchError.
Each exception has an error code for structured error handling.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes for structured error handling."""

    # General errors (1xxx)
    INTERNAL_ERROR = "ALR-1000"
    CONFIGURATION_ERROR = "ALR-1001"
    VALIDATION_ERROR = "ALR-1002"

    # Alert store errors (2xxx)
    ALERT_STORE_ERROR = "ALR-2000"
    ALERT_NOT_FOUND = "ALR-2001"

    # Embedding errors (3xxx)
    EMBEDDING_UNAVAILABLE = "ALR-3000"
    EMBEDDING_RATE_LIMIT = "ALR-3001"

    # Geo errors (4xxx)
    INVALID_COORDINATE = "ALR-4000"
    GEOCODING_ERROR = "ALR-4001"
    GEOCODE_NOT_FOUND = "ALR-4002"

    # LLM / summarization errors (5xxx)
    LLM_SERVICE_ERROR = "ALR-5000"
    LLM_TIMEOUT = "ALR-5001"
    LLM_RATE_LIMIT = "ALR-5002"
    SUMMARIZATION_UNAVAILABLE = "ALR-5003"

    # Retrieval errors (6xxx)
    RETRIEVAL_FAILED = "ALR-6000"


class AlertSearchError(Exception):
    """Base exception for all alert search errors.

    Attributes:
        message: Human-readable error message.
        code: Structured error code.
        details: Additional error context.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details,
            }
        }


class ConfigurationError(AlertSearchError):
    """Configuration or environment error."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, details)


class ValidationError(AlertSearchError):
    """Input validation error."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details)


class AlertStoreError(AlertSearchError):
    """Alert store is unreachable or returned something unusable."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.ALERT_STORE_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class EmbeddingUnavailable(AlertSearchError):
    """Embedding backend is down, over quota, or rejected the input.

    Always recovered locally: keyword fallback for the query, an
    embedding-absent candidate for a single alert.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.EMBEDDING_UNAVAILABLE,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class InvalidCoordinate(AlertSearchError):
    """A coordinate is missing, non-finite, or out of range.

    Callers treat this as "distance unknown", never as zero.
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.INVALID_COORDINATE, details)


class GeocodingError(AlertSearchError):
    """Geocoding service error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.GEOCODING_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class LLMError(AlertSearchError):
    """LLM service error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.LLM_SERVICE_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class SummarizationUnavailable(AlertSearchError):
    """Summary could not be produced; a templated answer is used instead."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.SUMMARIZATION_UNAVAILABLE, details)


class RetrievalFailed(AlertSearchError):
    """Store or ranking failure that aborts the whole request."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.RETRIEVAL_FAILED, details)
