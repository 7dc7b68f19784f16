"""Middleware components for the Artgram Booking Platform."""

from .error_handler import (
    ErrorHandlerMiddleware,
    artgram_error_handler,
    request_validation_error_handler,
)
from .logging import LoggingMiddleware

__all__ = [
    "ErrorHandlerMiddleware",
    "artgram_error_handler",
    "request_validation_error_handler",
    "LoggingMiddleware",
]
