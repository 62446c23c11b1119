"""Custom exception hierarchy for the gist store."""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Diagram errors
    DIAGRAM_NOT_FOUND = "DIAGRAM_NOT_FOUND"

    # Version errors
    VERSION_NOT_FOUND = "VERSION_NOT_FOUND"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Persistence errors
    STORAGE_FAILURE = "STORAGE_FAILURE"

    # Generic errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class GistStoreException(Exception):
    """
    Base exception for all gist store errors.

    Provides structured error responses with:
    - Human-readable message
    - Machine-readable error code
    - HTTP status code
    - Optional additional details
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            status_code: HTTP status code to return
            details: Optional additional context/details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for JSON response.

        Returns:
            Dictionary with error, message, and details fields
        """
        return {
            "error": self.error_code.value,
            "message": self.message,
            "details": self.details
        }


class DiagramNotFoundError(GistStoreException):
    """Diagram not found in database."""

    def __init__(self, diagram_id: str):
        super().__init__(
            f"Diagram not found: {diagram_id}",
            ErrorCode.DIAGRAM_NOT_FOUND,
            status_code=404,
            details={"diagram_id": diagram_id}
        )


class VersionNotFoundError(GistStoreException):
    """Version not found for the given diagram."""

    def __init__(self, diagram_id: str, version_id: str):
        super().__init__(
            f"Version not found: {version_id}",
            ErrorCode.VERSION_NOT_FOUND,
            status_code=404,
            details={"diagram_id": diagram_id, "version_id": version_id}
        )


class ValidationError(GistStoreException):
    """Validation failed for caller input."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message,
            ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=details
        )


class StorageFailureError(GistStoreException):
    """Underlying persistence call failed.

    The in-flight operation has been rolled back and the last durable
    state is untouched.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        details = {}
        if original_error:
            details["original_error"] = str(original_error)

        super().__init__(
            message,
            ErrorCode.STORAGE_FAILURE,
            status_code=500,
            details=details
        )
