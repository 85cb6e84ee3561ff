"""Application layer - use cases and orchestration.

This layer contains:
- Services: the envelope image store and the components it coordinates
- DTOs: Data transfer objects for API boundaries
"""

from envelope_images.application.dtos import (
    DeleteEnvelopeImageResult,
    DeleteEnvelopeResponse,
    EnvelopeImageResponse,
)
from envelope_images.application.services import (
    BlobCleanupQueue,
    BlobDownload,
    EnvelopeImageStore,
    MetadataCatalog,
    TransferAdapter,
)

__all__ = [
    # DTOs
    "DeleteEnvelopeImageResult",
    "DeleteEnvelopeResponse",
    "EnvelopeImageResponse",
    # Services
    "BlobCleanupQueue",
    "BlobDownload",
    "EnvelopeImageStore",
    "MetadataCatalog",
    "TransferAdapter",
]
