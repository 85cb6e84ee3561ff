"""Domain layer - envelope image models, value objects and exceptions."""

from envelope_images.domain.exceptions import (
    BackendException,
    BlobNotFoundException,
    BlobReadException,
    BlobWriteException,
    CatalogWriteException,
    DomainException,
    EnvelopeImageNotFoundException,
    InvalidEnvelopeIdException,
    NoContentException,
    PayloadTooLargeException,
    UnsupportedContentTypeException,
    ValidationException,
)
from envelope_images.domain.models import EnvelopeImage, build_access_url
from envelope_images.domain.value_objects import (
    ContentTypePolicy,
    EnvelopeId,
    normalize_content_type,
)

__all__ = [
    # Exceptions
    "DomainException",
    "ValidationException",
    "InvalidEnvelopeIdException",
    "UnsupportedContentTypeException",
    "NoContentException",
    "PayloadTooLargeException",
    "BackendException",
    "BlobWriteException",
    "BlobReadException",
    "CatalogWriteException",
    "EnvelopeImageNotFoundException",
    "BlobNotFoundException",
    # Models
    "EnvelopeImage",
    "build_access_url",
    # Value Objects
    "EnvelopeId",
    "ContentTypePolicy",
    "normalize_content_type",
]
