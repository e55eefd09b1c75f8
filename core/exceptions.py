"""
Custom exceptions for better error handling.
Each class carries the HTTP status the API layer reports it with.
"""
from typing import Any, Dict, Optional


class FinanceTrackerException(Exception):
    """Base exception for all finance tracker errors."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize exception.

        Args:
            message: Error message
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(FinanceTrackerException):
    """Raised when configuration is invalid."""
    pass


class ValidationError(FinanceTrackerException):
    """Raised when request data fails domain validation."""
    status_code = 400


class AuthenticationError(FinanceTrackerException):
    """Raised when credentials or tokens are invalid."""
    status_code = 401


class NotFoundError(FinanceTrackerException):
    """Raised when a record does not exist for the requesting user."""
    status_code = 404


class DuplicateError(FinanceTrackerException):
    """Raised when a uniqueness constraint would be violated."""
    status_code = 409


class FileProcessingError(FinanceTrackerException):
    """Raised when an uploaded document cannot be processed."""
    status_code = 422


class FileTooLargeError(FileProcessingError):
    """Raised when an upload exceeds the configured size limit."""
    status_code = 413


class UnsupportedFileError(FileProcessingError):
    """Raised when the uploaded file type is not supported."""
    status_code = 415


class ExtractionError(FileProcessingError):
    """Raised when no usable text or transactions can be extracted."""
    status_code = 422


class LLMError(FinanceTrackerException):
    """Raised when LLM API call fails."""
    status_code = 502


class ExportError(FinanceTrackerException):
    """Raised when Excel export fails."""
    pass
