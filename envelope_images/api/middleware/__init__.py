"""API middleware components."""

from envelope_images.api.middleware.error_handler import APIError, error_handler_middleware
from envelope_images.api.middleware.logging import LoggingMiddleware

__all__ = [
    "APIError",
    "LoggingMiddleware",
    "error_handler_middleware",
]
