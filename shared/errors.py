"""
Shared error handling for the Access Layer auth service.
"""

from enum import Enum
from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    message: str
    details: Dict[str, Any] = {}


class ErrorKind(str, Enum):
    """Failure categories surfaced by the metadata retrieval layer."""

    INVALID_KEY = "invalid_key"
    ARGUMENT_MISSING = "argument_missing"
    PARSE_FAILURE = "parse_failure"
    CACHE_UNAVAILABLE = "cache_unavailable"
    FETCH_FAILURE = "fetch_failure"
    CANCELLED = "cancelled"


class AccessLayerException(Exception):
    """Base exception for Access Layer services."""

    kind: Optional[ErrorKind] = None

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            details=self.details
        )


class ValidationError(AccessLayerException):
    """Validation-related errors."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class ExternalServiceError(AccessLayerException):
    """External service errors."""

    def __init__(self, service: str, message: str = "External service error", details: Optional[Dict[str, Any]] = None):
        super().__init__("EXTERNAL_SERVICE_ERROR", f"{service}: {message}", details)


class InvalidKeyError(AccessLayerException):
    """Raised when a cache operation receives an empty or missing key."""

    kind = ErrorKind.INVALID_KEY

    def __init__(self, key: Optional[str] = None):
        super().__init__(
            "INVALID_CACHE_KEY",
            "Cannot locate the cache key because the required parameter is empty",
            {"key": key},
        )


class ArgumentMissingError(AccessLayerException):
    """Raised when a required argument is absent or blank."""

    kind = ErrorKind.ARGUMENT_MISSING

    def __init__(self, argument: str):
        super().__init__("ARGUMENT_MISSING", f"Required argument is missing: {argument}", {"argument": argument})


class MetadataParseError(AccessLayerException):
    """Raised when a fetched or cached document cannot be decoded."""

    kind = ErrorKind.PARSE_FAILURE

    def __init__(self, message: str = "Unable to deserialize metadata document", details: Optional[Dict[str, Any]] = None):
        super().__init__("METADATA_PARSE_ERROR", message, details)


class DocumentFetchError(ExternalServiceError):
    """Raised when a metadata document cannot be retrieved from its source."""

    kind = ErrorKind.FETCH_FAILURE

    def __init__(self, address: str, message: str = "Unable to retrieve document", details: Optional[Dict[str, Any]] = None):
        merged = {"address": address}
        merged.update(details or {})
        super().__init__("metadata", message, merged)


class OperationCancelledError(AccessLayerException):
    """Raised when a cancellation request is observed before an I/O step."""

    kind = ErrorKind.CANCELLED

    def __init__(self, message: str = "The operation was cancelled"):
        super().__init__("OPERATION_CANCELLED", message)
