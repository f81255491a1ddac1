"""
Custom Exceptions Module.

This module defines the exceptions raised inside the extraction engine.
They never cross the engine boundary: the acquisition router and the
engine convert them into failed trace steps.

Exception Hierarchy:
    FieldExtractionError (base)
    ├── AcquisitionError
    │   ├── UnsupportedModalityError
    │   ├── CorruptedDocumentError
    │   ├── DocumentTooLargeError
    │   └── EmptyDocumentError
    ├── OCRError
    │   ├── OCREngineNotAvailableError
    │   ├── OCRProcessingError
    │   └── RecognitionPoolTimeoutError
    ├── CandidateError
    │   ├── InvalidCandidateError
    │   └── InvalidTemplateError
    └── ConfigurationError
"""


class FieldExtractionError(Exception):
    """
    Base exception for all extraction engine errors.

    Attributes:
        message: Human-readable error message.
        details: Optional dictionary with additional error details.
    """

    def __init__(self, message: str, details: dict = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# ACQUISITION ERRORS
# =============================================================================

class AcquisitionError(FieldExtractionError):
    """Base exception for document acquisition errors."""
    pass


class UnsupportedModalityError(AcquisitionError):
    """
    Raised when the payload matches none of the supported modalities.

    Example:
        >>> raise UnsupportedModalityError("report.docx", ["pdf", "csv"])
    """

    def __init__(self, source_hint: str, supported: list):
        message = f"Unsupported document modality: '{source_hint}'"
        details = {"source_hint": source_hint, "supported": supported}
        super().__init__(message, details)


class CorruptedDocumentError(AcquisitionError):
    """Raised when a payload cannot be opened by its modality's reader."""

    def __init__(self, source_hint: str, reason: str = None):
        message = f"Corrupted or unreadable document: {source_hint}"
        details = {"source_hint": source_hint, "reason": reason}
        super().__init__(message, details)


class DocumentTooLargeError(AcquisitionError):
    """Raised when a payload exceeds the configured byte limit."""

    def __init__(self, size: int, limit: int):
        message = f"Document too large: {size} bytes"
        details = {"size": size, "limit": limit}
        super().__init__(message, details)


class EmptyDocumentError(AcquisitionError):
    """Raised when the payload holds no bytes."""

    def __init__(self, source_hint: str):
        message = f"Empty document: {source_hint}"
        details = {"source_hint": source_hint}
        super().__init__(message, details)


# =============================================================================
# OCR ERRORS
# =============================================================================

class OCRError(FieldExtractionError):
    """Base exception for OCR-related errors."""
    pass


class OCREngineNotAvailableError(OCRError):
    """Raised when the recognition engine is not available."""

    def __init__(self, engine_name: str):
        message = f"OCR engine not available: {engine_name}"
        details = {"engine": engine_name}
        super().__init__(message, details)


class OCRProcessingError(OCRError):
    """Raised when a single recognition pass fails."""

    def __init__(self, variant: str, reason: str = None):
        message = f"OCR processing failed for variant: {variant}"
        details = {"variant": variant, "reason": reason}
        super().__init__(message, details)


class RecognitionPoolTimeoutError(OCRError):
    """Raised when no engine instance becomes free in time."""

    def __init__(self, timeout: float, size: int):
        message = f"No recognition engine available after {timeout}s"
        details = {"timeout": timeout, "pool_size": size}
        super().__init__(message, details)


# =============================================================================
# CANDIDATE ERRORS
# =============================================================================

class CandidateError(FieldExtractionError):
    """Base exception for candidate generation errors."""
    pass


class InvalidCandidateError(CandidateError):
    """Raised when a candidate value does not match its field's kind."""

    def __init__(self, field: str, value, reason: str = None):
        message = f"Invalid candidate for field '{field}'"
        details = {"field": field, "value": value, "reason": reason}
        super().__init__(message, details)


class InvalidTemplateError(CandidateError):
    """Raised when a caller-supplied supplier template is malformed."""

    def __init__(self, key: str, reason: str = None):
        message = f"Invalid supplier template '{key}'"
        details = {"template": key, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================

class ConfigurationError(FieldExtractionError):
    """Raised when a configuration value is missing or malformed."""

    def __init__(self, key: str, reason: str = None):
        message = f"Invalid configuration for '{key}'"
        details = {"key": key, "reason": reason}
        super().__init__(message, details)


__all__ = [
    'FieldExtractionError',
    'AcquisitionError',
    'UnsupportedModalityError',
    'CorruptedDocumentError',
    'DocumentTooLargeError',
    'EmptyDocumentError',
    'OCRError',
    'OCREngineNotAvailableError',
    'OCRProcessingError',
    'RecognitionPoolTimeoutError',
    'CandidateError',
    'InvalidCandidateError',
    'InvalidTemplateError',
    'ConfigurationError',
]
