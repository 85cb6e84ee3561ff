"""Abstract base class for blob storage operations."""

from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator, AsyncIterable
from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class BlobMetadata:
    """Metadata for a stored blob."""

    handle: str
    size_bytes: int
    content_type: str
    created_at: datetime
    filename: str = ""


@dataclass
class BlobReader:
    """An open read of a stored blob.

    `chunks` is a one-shot async generator. Closing it early (or calling
    `aclose`) releases the backend stream.
    """

    metadata: BlobMetadata
    chunks: AsyncGenerator[bytes, None]

    async def aclose(self) -> None:
        """Release the backend stream without reading the remaining bytes."""
        await self.chunks.aclose()


@dataclass
class HealthStatus:
    """Health check result."""

    healthy: bool
    latency_ms: float
    message: str | None = None
    details: dict[str, str] | None = field(default=None)


class BlobStorageBase(ABC):
    """Abstract base class for handle-addressed blob storage.

    A blob is immutable once created and is addressed by the opaque handle
    `create` returns. Implementations:
    - MinIO / AWS S3
    - MongoDB GridFS
    - In-memory (development and tests)
    """

    @abstractmethod
    async def ensure_ready(self) -> None:
        """Create the bucket (or equivalent) if it does not exist yet."""

    @abstractmethod
    async def create(
        self,
        chunks: AsyncIterable[bytes],
        content_type: str = "application/octet-stream",
        filename: str = "",
        metadata: dict[str, str] | None = None,
    ) -> BlobMetadata:
        """Store a byte stream as a new blob.

        Returns only after every byte is durably stored, so a returned handle
        is always fully readable. If `chunks` raises, the partial write is
        discarded and the exception propagates.

        Args:
            chunks: Async iterable of byte chunks.
            content_type: MIME type of the content.
            filename: Display name kept alongside the blob.
            metadata: Optional key-value metadata.

        Returns:
            Metadata of the stored blob, including its new handle.
        """

    @abstractmethod
    async def open_read(
        self,
        handle: str,
        chunk_size: int = 256 * 1024,
    ) -> BlobReader | None:
        """Open a blob for streaming.

        Args:
            handle: Blob handle.
            chunk_size: Preferred size of each yielded chunk.

        Returns:
            A reader, or None if the handle is unknown, stale or malformed.
        """

    @abstractmethod
    async def delete(self, handle: str) -> bool:
        """Delete a blob.

        Args:
            handle: Blob handle.

        Returns:
            True if deleted, False if it didn't exist.
        """

    @abstractmethod
    async def exists(self, handle: str) -> bool:
        """Check if a blob exists."""

    @abstractmethod
    async def list_blobs(
        self,
        created_before: datetime | None = None,
        max_results: int = 1000,
    ) -> list[BlobMetadata]:
        """List stored blobs.

        Args:
            created_before: Only return blobs created before this instant.
            max_results: Maximum number of results.

        Returns:
            List of blob metadata.
        """

    @abstractmethod
    async def health_check(self) -> HealthStatus:
        """Check service health."""

    async def close(self) -> None:  # noqa: B027
        """Release client resources. No-op by default."""
