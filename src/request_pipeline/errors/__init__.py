"""
Error classification and exception hierarchy.

Provides:
- ErrorCategory enum for classifying errors
- PipelineError hierarchy for typed exceptions
- Classification utilities for error handling
"""

from request_pipeline.errors.exceptions import (
    # Enums
    ErrorCategory,
    # Base classes
    PipelineError,
    TransientError,
    PermanentError,
    ConfigurationError,
    # Request failures
    TransportError,
    StatusCodeError,
    ConversionError,
    InvariantViolation,
    FileSystemError,
    # Classification utilities
    GENERIC_SERVER_MESSAGE,
    classify_http_status,
    wrap_exception,
    user_message,
)

__all__ = [
    # Enums
    "ErrorCategory",
    # Base classes
    "PipelineError",
    "TransientError",
    "PermanentError",
    "ConfigurationError",
    # Request failures
    "TransportError",
    "StatusCodeError",
    "ConversionError",
    "InvariantViolation",
    "FileSystemError",
    # Classification utilities
    "GENERIC_SERVER_MESSAGE",
    "classify_http_status",
    "wrap_exception",
    "user_message",
]
