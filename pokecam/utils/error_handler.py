"""
Centralized error handling for the card camera.

This module provides the exception hierarchy shared by the detector, the
capture loop and the identify client, plus a helper for logged propagation.
"""

import logging
from typing import Any, Dict, Optional
from dataclasses import dataclass


class PokecamError(Exception):
    """Base exception class for all card camera errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(PokecamError):
    """Raised when there are configuration or environment variable issues."""
    pass


class CaptureError(PokecamError):
    """Raised when the camera cannot be opened or stops delivering frames."""
    pass


class InvalidFrameError(PokecamError):
    """Raised when a frame cannot be fed to the detector (empty or wrong shape)."""
    pass


class ModelLoadError(PokecamError):
    """Raised when the detector model cannot be fetched or parsed."""
    pass


class ModelNotReadyError(PokecamError):
    """Raised when detection is requested before a model has been loaded."""
    pass


class InferenceError(PokecamError):
    """Raised when the forward pass or post-processing fails."""
    pass


class UploadError(PokecamError):
    """Raised when uploading crops to the identify service fails."""
    pass


@dataclass
class ErrorContext:
    """Context information for error reporting."""
    operation: str
    module: str
    function: str
    input_data: Optional[Dict[str, Any]] = None
    timestamp: Optional[str] = None


def handle_error(
    error: Exception,
    context: ErrorContext,
    logger: logging.Logger,
    reraise: bool = True,
    default_return: Any = None
) -> Any:
    """
    Centralized error handling with logging and optional recovery.

    Args:
        error: The exception that occurred
        context: Context information about where the error occurred
        logger: Logger instance to use for error reporting
        reraise: Whether to re-raise the exception after logging
        default_return: Value to return if not re-raising

    Returns:
        The default_return value if not re-raising

    Raises:
        The original exception if reraise is True
    """
    error_msg = f"Error in {context.module}.{context.function} during {context.operation}"

    if isinstance(error, PokecamError):
        error_msg += f": {error.message}"
        if error.details:
            error_msg += f" | Details: {error.details}"
    else:
        error_msg += f": {str(error)}"

    logger.error(
        error_msg,
        extra={
            "error_type": type(error).__name__,
            "operation": context.operation,
            "error_module": context.module,
            "error_function": context.function,
            "input_data": context.input_data,
            "timestamp": context.timestamp,
        },
        exc_info=error,
    )

    if reraise:
        raise error

    return default_return
