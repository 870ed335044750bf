"""
API error definitions and exception classes.

Provides consistent error handling across all API endpoints.
"""

from enum import Enum
from typing import Any

from tributary.exceptions import (
    ConfigurationError,
    RuleError,
    SnapshotError,
    StoreUnavailableError,
    TraversalCancelledError,
    TributaryError,
    UnknownObjectError,
    ValidationError as DomainValidationError,
)


class ErrorCode(str, Enum):
    """Standard API error codes."""

    # Client errors (4xx)
    INVALID_REQUEST = "INVALID_REQUEST"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    OBJECT_NOT_FOUND = "OBJECT_NOT_FOUND"
    CANCELLED = "CANCELLED"

    # Server errors (5xx)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


class APIError(Exception):
    """
    Base API exception with structured error response.

    Usage:
        raise APIError(
            code=ErrorCode.OBJECT_NOT_FOUND,
            message="Unknown object: raw.sales",
            status=404,
            details={"object_id": "raw.sales"}
        )
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        status: int = 400,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status = status
        self.details = details or {}

    def to_dict(self, request_id: str | None = None) -> dict[str, Any]:
        """Convert to API response format."""
        error_dict: dict[str, Any] = {
            "code": self.code.value,
            "message": self.message,
        }
        if self.details:
            error_dict["details"] = self.details
        if request_id:
            error_dict["request_id"] = request_id
        return {"error": error_dict}


class ValidationError(APIError):
    """Request validation error."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            code=ErrorCode.VALIDATION_ERROR,
            message=message,
            status=400,
            details=details,
        )


# Most specific first; the first matching class wins
_DOMAIN_ERRORS: list[tuple[type[TributaryError], ErrorCode, int]] = [
    (DomainValidationError, ErrorCode.VALIDATION_ERROR, 400),
    (UnknownObjectError, ErrorCode.OBJECT_NOT_FOUND, 404),
    (TraversalCancelledError, ErrorCode.CANCELLED, 408),
    (StoreUnavailableError, ErrorCode.SERVICE_UNAVAILABLE, 503),
    (SnapshotError, ErrorCode.SERVICE_UNAVAILABLE, 503),
    (ConfigurationError, ErrorCode.CONFIGURATION_ERROR, 500),
    (RuleError, ErrorCode.CONFIGURATION_ERROR, 500),
]


def api_error_from(error: TributaryError) -> APIError:
    """Translate a domain error into its HTTP representation."""
    for error_type, code, status in _DOMAIN_ERRORS:
        if isinstance(error, error_type):
            return APIError(code=code, message=error.message, status=status, details=error.details)
    return APIError(code=ErrorCode.INTERNAL_ERROR, message=error.message, status=500, details=error.details)
