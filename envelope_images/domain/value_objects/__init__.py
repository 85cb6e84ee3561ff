"""Domain value objects."""

from envelope_images.domain.value_objects.content_type_policy import (
    ContentTypePolicy,
    normalize_content_type,
)
from envelope_images.domain.value_objects.envelope_id import EnvelopeId

__all__ = ["ContentTypePolicy", "EnvelopeId", "normalize_content_type"]
