"""Data Transfer Objects for application layer."""

from envelope_images.application.dtos.envelope_image import (
    DeleteEnvelopeImageResult,
    DeleteEnvelopeResponse,
    EnvelopeImageResponse,
)

__all__ = [
    "DeleteEnvelopeImageResult",
    "DeleteEnvelopeResponse",
    "EnvelopeImageResponse",
]
