"""Document database abstractions and implementations."""

from envelope_images.commons.infrastructure.documentdb.base import DocumentDBBase
from envelope_images.commons.infrastructure.documentdb.mongodb_provider import (
    MongoDBDocumentDB,
)

__all__ = [
    # Base classes
    "DocumentDBBase",
    # Implementations
    "MongoDBDocumentDB",
]
