"""Application services for envelope image storage."""

from envelope_images.application.services.catalog import CatalogUpsert, MetadataCatalog
from envelope_images.application.services.cleanup import BlobCleanupQueue
from envelope_images.application.services.envelope_images import EnvelopeImageStore
from envelope_images.application.services.transfer import (
    BlobDownload,
    ByteSource,
    TransferAdapter,
)

__all__ = [
    "BlobCleanupQueue",
    "BlobDownload",
    "ByteSource",
    "CatalogUpsert",
    "EnvelopeImageStore",
    "MetadataCatalog",
    "TransferAdapter",
]
