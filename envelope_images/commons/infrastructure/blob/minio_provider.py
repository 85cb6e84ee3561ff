"""MinIO implementation of blob storage."""

import asyncio
import tempfile
import time
from collections.abc import AsyncGenerator, AsyncIterable
from datetime import UTC, datetime
from typing import Any
from urllib.parse import quote, unquote
from uuid import uuid4

from minio import Minio
from minio.error import S3Error

from envelope_images.commons.infrastructure.blob.base import (
    BlobMetadata,
    BlobReader,
    BlobStorageBase,
    HealthStatus,
)

# S3 error codes that mean "there is nothing under this key"
_MISSING_CODES = frozenset({"NoSuchKey", "NoSuchObject", "NotFound"})

# Uploads larger than this are spooled to disk before the PUT
_SPOOL_MAX_MEMORY = 4 * 1024 * 1024


class MinioBlobStorage(BlobStorageBase):
    """MinIO implementation of blob storage.

    Works with both MinIO (local development) and AWS S3 (production).
    All blobs live in one bucket under a random hex object name, which is
    the blob handle.
    """

    def __init__(
        self,
        endpoint: str,
        access_key: str,
        secret_key: str,
        bucket: str,
        secure: bool = False,
        region: str | None = None,
    ) -> None:
        """Initialize MinIO client.

        Args:
            endpoint: MinIO/S3 endpoint (e.g., "localhost:9000").
            access_key: Access key ID.
            secret_key: Secret access key.
            bucket: Bucket holding the blobs.
            secure: Use HTTPS connection.
            region: AWS region (optional, for S3).
        """
        self._client = Minio(
            endpoint=endpoint,
            access_key=access_key,
            secret_key=secret_key,
            secure=secure,
            region=region,
        )
        self._endpoint = endpoint
        self._bucket = bucket

    async def ensure_ready(self) -> None:
        """Create the bucket if it does not exist yet."""
        loop = asyncio.get_running_loop()

        def _create() -> None:
            if not self._client.bucket_exists(self._bucket):
                self._client.make_bucket(self._bucket)

        await loop.run_in_executor(None, _create)

    async def create(
        self,
        chunks: AsyncIterable[bytes],
        content_type: str = "application/octet-stream",
        filename: str = "",
        metadata: dict[str, str] | None = None,
    ) -> BlobMetadata:
        """Spool the stream locally, then PUT it with a known length.

        Nothing reaches the bucket until the source is fully read, so a
        failing source leaves no partial object behind.
        """
        loop = asyncio.get_running_loop()
        handle = uuid4().hex

        # S3 user metadata must be ASCII
        object_metadata = {"filename": quote(filename)} if filename else {}
        for key, value in (metadata or {}).items():
            object_metadata[key] = quote(str(value))

        with tempfile.SpooledTemporaryFile(max_size=_SPOOL_MAX_MEMORY) as spool:
            length = 0
            async for chunk in chunks:
                # Past _SPOOL_MAX_MEMORY the spool writes to disk
                await loop.run_in_executor(None, spool.write, chunk)
                length += len(chunk)
            await loop.run_in_executor(None, spool.seek, 0)

            def _upload() -> None:
                self._client.put_object(
                    bucket_name=self._bucket,
                    object_name=handle,
                    data=spool,
                    length=length,
                    content_type=content_type,
                    metadata=object_metadata,  # type: ignore[arg-type]
                )

            await loop.run_in_executor(None, _upload)

        stored = await self._stat(handle)
        if stored is None:
            raise RuntimeError(f"Blob {handle} missing right after upload")
        return stored

    async def open_read(
        self,
        handle: str,
        chunk_size: int = 256 * 1024,
    ) -> BlobReader | None:
        """Open a blob for streaming, or None if it is absent."""
        loop = asyncio.get_running_loop()

        stored = await self._stat(handle)
        if stored is None:
            return None

        def _get() -> Any:
            try:
                return self._client.get_object(self._bucket, handle)
            except S3Error as e:
                if e.code in _MISSING_CODES:
                    return None
                raise

        response = await loop.run_in_executor(None, _get)
        if response is None:
            # Deleted between stat and get
            return None

        async def _chunks() -> AsyncGenerator[bytes, None]:
            try:
                while True:
                    chunk: bytes = await loop.run_in_executor(
                        None, response.read, chunk_size
                    )
                    if not chunk:
                        break
                    yield chunk
            finally:
                response.close()
                response.release_conn()

        return BlobReader(metadata=stored, chunks=_chunks())

    async def delete(self, handle: str) -> bool:
        """Delete a blob from storage."""
        loop = asyncio.get_running_loop()

        exists = await self.exists(handle)
        if not exists:
            return False

        def _delete() -> None:
            self._client.remove_object(self._bucket, handle)

        await loop.run_in_executor(None, _delete)
        return True

    async def exists(self, handle: str) -> bool:
        """Check if a blob exists."""
        return await self._stat(handle) is not None

    async def list_blobs(
        self,
        created_before: datetime | None = None,
        max_results: int = 1000,
    ) -> list[BlobMetadata]:
        """List blobs, optionally only those created before a cutoff."""
        loop = asyncio.get_running_loop()

        def _list() -> list[BlobMetadata]:
            objects = self._client.list_objects(
                bucket_name=self._bucket,
                recursive=True,
            )
            results: list[BlobMetadata] = []
            for obj in objects:
                if len(results) >= max_results:
                    break
                created_at = obj.last_modified or datetime.now(UTC)
                if created_before is not None and created_at >= created_before:
                    continue
                results.append(
                    BlobMetadata(
                        handle=obj.object_name or "",
                        size_bytes=obj.size or 0,
                        content_type="application/octet-stream",
                        created_at=created_at,
                    )
                )
            return results

        return await loop.run_in_executor(None, _list)

    async def health_check(self) -> HealthStatus:
        """Check service health."""
        start = time.perf_counter()
        try:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self._client.bucket_exists, self._bucket)
            latency_ms = (time.perf_counter() - start) * 1000
            return HealthStatus(
                healthy=True,
                latency_ms=latency_ms,
                message="MinIO is healthy",
                details={"endpoint": self._endpoint, "bucket": self._bucket},
            )
        except Exception as e:
            latency_ms = (time.perf_counter() - start) * 1000
            return HealthStatus(
                healthy=False,
                latency_ms=latency_ms,
                message=f"MinIO health check failed: {e}",
                details={"endpoint": self._endpoint, "error": str(e)},
            )

    async def _stat(self, handle: str) -> BlobMetadata | None:
        """Stat an object, mapping missing keys and malformed handles to None."""
        loop = asyncio.get_running_loop()

        def _stat() -> BlobMetadata | None:
            try:
                stat = self._client.stat_object(self._bucket, handle)
            except S3Error as e:
                if e.code in _MISSING_CODES:
                    return None
                raise
            except ValueError:
                # Rejected object name
                return None
            user_metadata = stat.metadata or {}
            filename = user_metadata.get("x-amz-meta-filename", "")
            return BlobMetadata(
                handle=handle,
                size_bytes=stat.size or 0,
                content_type=stat.content_type or "application/octet-stream",
                created_at=stat.last_modified or datetime.now(UTC),
                filename=unquote(filename),
            )

        if not handle:
            return None
        return await loop.run_in_executor(None, _stat)
