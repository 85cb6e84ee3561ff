"""MongoDB GridFS implementation of blob storage."""

import time
from collections.abc import AsyncGenerator, AsyncIterable
from datetime import UTC, datetime
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId
from gridfs.errors import NoFile
from motor.motor_asyncio import AsyncIOMotorDatabase, AsyncIOMotorGridFSBucket

from envelope_images.commons.infrastructure.blob.base import (
    BlobMetadata,
    BlobReader,
    BlobStorageBase,
    HealthStatus,
)


def _parse_handle(handle: str) -> ObjectId | None:
    """Convert a handle to an ObjectId, or None if it is malformed."""
    try:
        return ObjectId(handle)
    except (InvalidId, TypeError):
        return None


class GridFSBlobStorage(BlobStorageBase):
    """GridFS implementation of blob storage.

    Blobs are GridFS files in the `<bucket>.files` / `<bucket>.chunks`
    collections; the handle is the file's ObjectId as a hex string. Files
    written by other GridFS clients that set a top-level `contentType` are
    read back with that content type.
    """

    def __init__(
        self,
        database: AsyncIOMotorDatabase[dict[str, Any]],
        bucket: str = "uploads",
        chunk_size_bytes: int = 255 * 1024,
    ) -> None:
        """Initialize the GridFS bucket.

        Args:
            database: Motor database shared with the metadata catalog.
            bucket: GridFS bucket name.
            chunk_size_bytes: GridFS chunk size for new files.
        """
        self._db = database
        self._bucket_name = bucket
        self._chunk_size = chunk_size_bytes
        self._bucket = AsyncIOMotorGridFSBucket(database, bucket_name=bucket)

    @property
    def _files(self) -> Any:
        return self._db[f"{self._bucket_name}.files"]

    async def ensure_ready(self) -> None:
        """GridFS creates its collections and indexes on first write."""
        await self._files.create_index([("uploadDate", 1)])

    async def create(
        self,
        chunks: AsyncIterable[bytes],
        content_type: str = "application/octet-stream",
        filename: str = "",
        metadata: dict[str, str] | None = None,
    ) -> BlobMetadata:
        """Stream chunks into a new GridFS file.

        The file document is written on close, after the last chunk; an
        aborted upload removes the chunks already written.
        """
        file_metadata: dict[str, Any] = {"contentType": content_type}
        file_metadata.update(metadata or {})

        grid_in = self._bucket.open_upload_stream(
            filename,
            chunk_size_bytes=self._chunk_size,
            metadata=file_metadata,
        )
        length = 0
        try:
            async for chunk in chunks:
                await grid_in.write(chunk)
                length += len(chunk)
        except BaseException:
            await grid_in.abort()
            raise
        await grid_in.close()

        return BlobMetadata(
            handle=str(grid_in._id),
            size_bytes=length,
            content_type=content_type,
            created_at=datetime.now(UTC),
            filename=filename,
        )

    async def open_read(
        self,
        handle: str,
        chunk_size: int = 256 * 1024,
    ) -> BlobReader | None:
        """Open a GridFS file for streaming, or None if it is absent."""
        file_id = _parse_handle(handle)
        if file_id is None:
            return None

        file_doc = await self._files.find_one({"_id": file_id})
        if file_doc is None:
            return None

        try:
            grid_out = await self._bucket.open_download_stream(file_id)
        except NoFile:
            return None

        async def _chunks() -> AsyncGenerator[bytes, None]:
            while True:
                chunk: bytes = await grid_out.read(chunk_size)
                if not chunk:
                    break
                yield chunk

        return BlobReader(metadata=self._to_metadata(file_doc), chunks=_chunks())

    async def delete(self, handle: str) -> bool:
        """Delete a GridFS file and its chunks."""
        file_id = _parse_handle(handle)
        if file_id is None:
            return False
        try:
            await self._bucket.delete(file_id)
        except NoFile:
            return False
        return True

    async def exists(self, handle: str) -> bool:
        """Check if a GridFS file exists."""
        file_id = _parse_handle(handle)
        if file_id is None:
            return False
        return await self._files.find_one({"_id": file_id}, {"_id": 1}) is not None

    async def list_blobs(
        self,
        created_before: datetime | None = None,
        max_results: int = 1000,
    ) -> list[BlobMetadata]:
        """List GridFS files, optionally only those uploaded before a cutoff."""
        filters: dict[str, Any] = {}
        if created_before is not None:
            filters["uploadDate"] = {"$lt": created_before}

        cursor = self._files.find(filters).limit(max_results)
        return [self._to_metadata(doc) async for doc in cursor]

    async def health_check(self) -> HealthStatus:
        """Check service health."""
        start = time.perf_counter()
        try:
            await self._db.command("ping")
            latency_ms = (time.perf_counter() - start) * 1000
            return HealthStatus(
                healthy=True,
                latency_ms=latency_ms,
                message="GridFS is healthy",
                details={"bucket": self._bucket_name},
            )
        except Exception as e:
            latency_ms = (time.perf_counter() - start) * 1000
            return HealthStatus(
                healthy=False,
                latency_ms=latency_ms,
                message=f"GridFS health check failed: {e}",
                details={"bucket": self._bucket_name, "error": str(e)},
            )

    def _to_metadata(self, file_doc: dict[str, Any]) -> BlobMetadata:
        """Map a `<bucket>.files` document to BlobMetadata."""
        metadata = file_doc.get("metadata") or {}
        content_type = (
            metadata.get("contentType")
            or file_doc.get("contentType")
            or "application/octet-stream"
        )
        created_at = file_doc.get("uploadDate") or datetime.now(UTC)
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=UTC)
        return BlobMetadata(
            handle=str(file_doc["_id"]),
            size_bytes=int(file_doc.get("length", 0)),
            content_type=content_type,
            created_at=created_at,
            filename=file_doc.get("filename", ""),
        )
