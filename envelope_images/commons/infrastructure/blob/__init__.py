"""Blob storage abstractions and implementations."""

from envelope_images.commons.infrastructure.blob.base import (
    BlobMetadata,
    BlobReader,
    BlobStorageBase,
    HealthStatus,
)
from envelope_images.commons.infrastructure.blob.gridfs_provider import (
    GridFSBlobStorage,
)
from envelope_images.commons.infrastructure.blob.memory_provider import (
    InMemoryBlobStorage,
)
from envelope_images.commons.infrastructure.blob.minio_provider import (
    MinioBlobStorage,
)

__all__ = [
    # Base classes
    "BlobMetadata",
    "BlobReader",
    "BlobStorageBase",
    "HealthStatus",
    # Implementations
    "GridFSBlobStorage",
    "InMemoryBlobStorage",
    "MinioBlobStorage",
]
