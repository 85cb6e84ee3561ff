"""Domain models."""

from envelope_images.domain.models.envelope_image import (
    EnvelopeImage,
    build_access_url,
)

__all__ = [
    "EnvelopeImage",
    "build_access_url",
]
