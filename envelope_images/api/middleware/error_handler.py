"""Error handling middleware and exception handlers."""

from typing import Any

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import RequestResponseEndpoint
from starlette.responses import Response

from envelope_images.commons.telemetry.logger import get_logger
from envelope_images.domain.exceptions import (
    BackendException,
    BlobNotFoundException,
    CatalogWriteException,
    DomainException,
    EnvelopeImageNotFoundException,
    InvalidEnvelopeIdException,
    NoContentException,
    PayloadTooLargeException,
    UnsupportedContentTypeException,
    ValidationException,
)

logger = get_logger(__name__)


class APIError(Exception):
    """Base API error with code and details."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize API error.

        Args:
            code: Error code for clients.
            message: Human-readable error message.
            status_code: HTTP status code.
            details: Additional error details.
        """
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


def _build_error_response(
    request: Request,
    code: str,
    message: str,
    status_code: int,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Build standardized error response.

    Args:
        request: HTTP request.
        code: Error code.
        message: Error message.
        status_code: HTTP status code.
        details: Additional details.

    Returns:
        JSON error response.
    """
    request_id = getattr(request.state, "request_id", "unknown")

    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code,
                "message": message,
                "details": details or {},
                "request_id": request_id,
            }
        },
    )


def _validation_code(exc: ValidationException) -> tuple[str, dict[str, Any]]:
    """Error code and details for a rejected request."""
    if isinstance(exc, InvalidEnvelopeIdException):
        return "INVALID_ENVELOPE_ID", {"envelope_id": str(exc.value)}
    if isinstance(exc, UnsupportedContentTypeException):
        return "UNSUPPORTED_CONTENT_TYPE", {"content_type": exc.content_type}
    if isinstance(exc, NoContentException):
        return "NO_CONTENT", {}
    return "VALIDATION_ERROR", {}


def _handle_exception(  # noqa: PLR0911
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle exception and return appropriate error response.

    Args:
        request: HTTP request.
        exc: Exception to handle.

    Returns:
        JSON error response.
    """
    if isinstance(exc, APIError):
        logger.warning(
            f"API error: {exc.code}",
            extra={
                "error_code": exc.code,
                "error_message": exc.message,
                "details": exc.details,
            },
        )
        return _build_error_response(
            request=request,
            code=exc.code,
            message=exc.message,
            status_code=exc.status_code,
            details=exc.details,
        )

    if isinstance(exc, PayloadTooLargeException):
        logger.warning(f"Upload too large: {exc}")
        return _build_error_response(
            request=request,
            code="PAYLOAD_TOO_LARGE",
            message=str(exc),
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            details={"max_file_size": exc.limit_bytes},
        )

    if isinstance(exc, ValidationException):
        code, details = _validation_code(exc)
        logger.warning(f"Validation error: {exc}")
        return _build_error_response(
            request=request,
            code=code,
            message=str(exc),
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
        )

    if isinstance(exc, EnvelopeImageNotFoundException):
        logger.warning(f"Envelope image not found: {exc}")
        return _build_error_response(
            request=request,
            code="ENVELOPE_IMAGE_NOT_FOUND",
            message=str(exc),
            status_code=status.HTTP_404_NOT_FOUND,
            details={"envelope_id": exc.envelope_id},
        )

    if isinstance(exc, BlobNotFoundException):
        logger.warning(f"Blob not found: {exc}")
        return _build_error_response(
            request=request,
            code="FILE_NOT_FOUND",
            message="Not found",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"handle": exc.handle},
        )

    if isinstance(exc, CatalogWriteException):
        logger.error(f"Catalog write failed: {exc}")
        return _build_error_response(
            request=request,
            code="CATALOG_WRITE_FAILED",
            message="Upload failed",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={"envelope_id": exc.envelope_id},
        )

    if isinstance(exc, BackendException):
        logger.error(f"Storage backend error: {exc}")
        return _build_error_response(
            request=request,
            code="STORAGE_ERROR",
            message="Storage backend failure",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, DomainException):
        logger.warning(f"Domain error: {exc}")
        return _build_error_response(
            request=request,
            code="DOMAIN_ERROR",
            message=str(exc),
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    # Catch-all for unexpected errors
    logger.exception(f"Unexpected error: {exc}")
    return _build_error_response(
        request=request,
        code="INTERNAL_ERROR",
        message="An unexpected error occurred",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


async def error_handler_middleware(
    request: Request,
    call_next: RequestResponseEndpoint,
) -> Response:
    """Middleware to catch and format all exceptions.

    Args:
        request: HTTP request.
        call_next: Next handler in chain.

    Returns:
        HTTP response.
    """
    try:
        return await call_next(request)
    except Exception as exc:
        return _handle_exception(request, exc)
