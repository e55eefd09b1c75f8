"""
Unit tests for custom exceptions.
"""
from core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    DuplicateError,
    ExportError,
    ExtractionError,
    FileProcessingError,
    FileTooLargeError,
    FinanceTrackerException,
    LLMError,
    NotFoundError,
    UnsupportedFileError,
    ValidationError,
)


def test_base_exception():
    """Test base exception class."""
    exc = FinanceTrackerException("Test error", details={"key": "value"})
    assert str(exc) == "Test error"
    assert exc.message == "Test error"
    assert exc.details == {"key": "value"}
    assert exc.status_code == 500


def test_exception_hierarchy():
    """Test exception inheritance."""
    for cls in (ConfigurationError, ValidationError, AuthenticationError, NotFoundError,
                DuplicateError, FileProcessingError, LLMError, ExportError):
        assert issubclass(cls, FinanceTrackerException)
    assert issubclass(UnsupportedFileError, FileProcessingError)
    assert issubclass(ExtractionError, FileProcessingError)
    assert issubclass(FileTooLargeError, FileProcessingError)


def test_status_codes():
    """Each error class carries the status the API reports."""
    assert ValidationError("x").status_code == 400
    assert AuthenticationError("x").status_code == 401
    assert NotFoundError("x").status_code == 404
    assert DuplicateError("x").status_code == 409
    assert FileTooLargeError("x").status_code == 413
    assert UnsupportedFileError("x").status_code == 415
    assert ExtractionError("x").status_code == 422
    assert LLMError("x").status_code == 502
    assert ConfigurationError("x").status_code == 500


def test_exception_with_details():
    """Test exception with details dictionary."""
    details = {"file_path": "/test/path", "line": 42}
    exc = ExtractionError("Parsing failed", details=details)
    assert exc.message == "Parsing failed"
    assert exc.details["file_path"] == "/test/path"
    assert exc.details["line"] == 42


def test_exception_without_details():
    """Test exception without details."""
    exc = LLMError("API call failed")
    assert exc.message == "API call failed"
    assert exc.details == {}
