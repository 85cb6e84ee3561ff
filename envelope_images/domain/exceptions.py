"""Domain exceptions for the envelope image store."""


class DomainException(Exception):
    """Base exception for domain errors."""


# =============================================================================
# Validation - rejected before any blob or catalog I/O
# =============================================================================


class ValidationException(DomainException):
    """Raised when a request is rejected before touching storage."""


class InvalidEnvelopeIdException(ValidationException):
    """Raised when an envelope id is not a non-negative integer."""

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"Invalid envelopeId: {value!r}")


class UnsupportedContentTypeException(ValidationException):
    """Raised when the uploaded content type is not on the allow-list."""

    def __init__(self, content_type: str | None) -> None:
        self.content_type = content_type
        super().__init__(
            f"Only image uploads are allowed (got content type {content_type!r})"
        )


class NoContentException(ValidationException):
    """Raised when an upload carries no bytes."""

    def __init__(self) -> None:
        super().__init__("No file uploaded")


class PayloadTooLargeException(ValidationException):
    """Raised when an upload exceeds the configured size limit."""

    def __init__(self, limit_bytes: int) -> None:
        self.limit_bytes = limit_bytes
        super().__init__(f"File too large. MAX_FILE_SIZE={limit_bytes}")


# =============================================================================
# Backend - blob store or catalog I/O failures
# =============================================================================


class BackendException(DomainException):
    """Raised when the blob store or the metadata catalog fails."""


class BlobWriteException(BackendException):
    """Raised when streaming bytes into the blob store fails."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Blob write failed: {reason}")


class BlobReadException(BackendException):
    """Raised when streaming bytes out of the blob store fails mid-read."""

    def __init__(self, handle: str, reason: str) -> None:
        self.handle = handle
        self.reason = reason
        super().__init__(f"Blob read failed for {handle}: {reason}")


class CatalogWriteException(BackendException):
    """Raised when the catalog upsert fails after the blob was written."""

    def __init__(self, envelope_id: int, reason: str) -> None:
        self.envelope_id = envelope_id
        self.reason = reason
        super().__init__(f"Catalog write failed for envelope {envelope_id}: {reason}")


# =============================================================================
# Absence
# =============================================================================


class EnvelopeImageNotFoundException(DomainException):
    """Raised when no image is bound to the requested envelope."""

    def __init__(self, envelope_id: int) -> None:
        self.envelope_id = envelope_id
        super().__init__(f"No image for envelope: {envelope_id}")


class BlobNotFoundException(DomainException):
    """Raised when a blob handle does not resolve to stored content."""

    def __init__(self, handle: str) -> None:
        self.handle = handle
        super().__init__(f"Blob not found: {handle}")
