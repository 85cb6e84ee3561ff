"""In-memory blob storage for development and testing."""

import time
from collections.abc import AsyncGenerator, AsyncIterable
from datetime import UTC, datetime
from uuid import uuid4

from envelope_images.commons.infrastructure.blob.base import (
    BlobMetadata,
    BlobReader,
    BlobStorageBase,
    HealthStatus,
)


class InMemoryBlobStorage(BlobStorageBase):
    """Dict-backed blob storage.

    Blobs are only visible once `create` has consumed the whole source, the
    same guarantee the durable providers give.
    """

    def __init__(self) -> None:
        self._blobs: dict[str, bytes] = {}
        self._metadata: dict[str, BlobMetadata] = {}

    def __len__(self) -> int:
        return len(self._blobs)

    def __contains__(self, handle: object) -> bool:
        return handle in self._blobs

    async def ensure_ready(self) -> None:
        """Nothing to prepare."""

    async def create(
        self,
        chunks: AsyncIterable[bytes],
        content_type: str = "application/octet-stream",
        filename: str = "",
        metadata: dict[str, str] | None = None,
    ) -> BlobMetadata:
        """Buffer the stream, then publish it under a fresh handle."""
        buffer = bytearray()
        async for chunk in chunks:
            buffer.extend(chunk)

        handle = uuid4().hex
        stored = BlobMetadata(
            handle=handle,
            size_bytes=len(buffer),
            content_type=content_type,
            created_at=datetime.now(UTC),
            filename=filename,
        )
        self._blobs[handle] = bytes(buffer)
        self._metadata[handle] = stored
        return stored

    async def open_read(
        self,
        handle: str,
        chunk_size: int = 256 * 1024,
    ) -> BlobReader | None:
        """Open a blob for streaming, or None if it is absent."""
        data = self._blobs.get(handle)
        if data is None:
            return None

        async def _chunks() -> AsyncGenerator[bytes, None]:
            for offset in range(0, len(data), chunk_size):
                yield data[offset : offset + chunk_size]

        return BlobReader(metadata=self._metadata[handle], chunks=_chunks())

    async def delete(self, handle: str) -> bool:
        """Delete a blob; False if it was already gone."""
        self._metadata.pop(handle, None)
        return self._blobs.pop(handle, None) is not None

    async def exists(self, handle: str) -> bool:
        """Check if a blob exists."""
        return handle in self._blobs

    async def list_blobs(
        self,
        created_before: datetime | None = None,
        max_results: int = 1000,
    ) -> list[BlobMetadata]:
        """List blobs, optionally only those created before a cutoff."""
        results = [
            meta
            for meta in self._metadata.values()
            if created_before is None or meta.created_at < created_before
        ]
        return results[:max_results]

    async def health_check(self) -> HealthStatus:
        """Always healthy."""
        start = time.perf_counter()
        return HealthStatus(
            healthy=True,
            latency_ms=(time.perf_counter() - start) * 1000,
            message="In-memory blob storage",
            details={"blobs": str(len(self._blobs))},
        )
