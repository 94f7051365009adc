"""
Shared error handling for the Helm values schema service.

Every failure a request can hit is terminal for that request and is surfaced
as a JSON envelope with a stable machine-readable ``error`` tag.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str
    message: str


class SchemaServiceException(Exception):
    """Base exception for schema service errors."""

    status_code: int = 500

    def __init__(
        self,
        error: str,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.error = error
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(error=self.error, message=self.message)


class MethodNotAllowedError(SchemaServiceException):
    """The client used a verb other than GET."""

    status_code = 405

    def __init__(self, message: str = "Only GET method is allowed", details: Optional[Dict[str, Any]] = None):
        super().__init__("method_not_allowed", message, details=details)


class FetchFailedError(SchemaServiceException):
    """The remote values document could not be retrieved."""

    status_code = 400

    def __init__(self, message: str = "failed to download file", details: Optional[Dict[str, Any]] = None):
        super().__init__("download_failed", message, details=details)


class TransformFailedError(SchemaServiceException):
    """The schema could not be derived from the values document."""

    status_code = 500

    def __init__(self, message: str = "failed to generate schema", details: Optional[Dict[str, Any]] = None):
        super().__init__("schema_generation_failed", message, details=details)
