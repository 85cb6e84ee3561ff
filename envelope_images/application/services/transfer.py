"""Transfer adapter between request/response byte streams and blob storage."""

from collections.abc import AsyncGenerator, AsyncIterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from envelope_images.commons.infrastructure.blob.base import (
    BlobMetadata,
    BlobReader,
    BlobStorageBase,
)
from envelope_images.commons.telemetry import get_logger
from envelope_images.domain.exceptions import (
    BlobReadException,
    BlobWriteException,
    NoContentException,
    PayloadTooLargeException,
    ValidationException,
)


@runtime_checkable
class AsyncReadable(Protocol):
    """Anything with an awaitable `read(size)`, e.g. FastAPI's UploadFile."""

    async def read(self, size: int = -1) -> bytes: ...


# Inbound payloads the adapter accepts
ByteSource = bytes | bytearray | AsyncReadable | AsyncIterable[bytes]


@dataclass
class BlobDownload:
    """A blob opened for streaming to a client."""

    handle: str
    content_type: str
    size_bytes: int
    chunks: AsyncGenerator[bytes, None]

    async def aclose(self) -> None:
        """Stop streaming and release the backend read."""
        await self.chunks.aclose()


class TransferAdapter:
    """Streams inbound bytes into blob storage and stored blobs back out.

    Writes are bounded by `max_size_bytes` and refuse empty sources before
    touching storage. Backend failures surface as BlobWriteException /
    BlobReadException instead of truncated data.
    """

    def __init__(
        self,
        blob_storage: BlobStorageBase,
        max_size_bytes: int,
        chunk_size: int = 256 * 1024,
    ) -> None:
        """Initialize the adapter.

        Args:
            blob_storage: Blob storage provider.
            max_size_bytes: Largest payload accepted.
            chunk_size: Read size for inbound and outbound streams.
        """
        self._blob = blob_storage
        self._max_size = max_size_bytes
        self._chunk_size = chunk_size
        self._logger = get_logger(__name__)

    async def write(
        self,
        source: ByteSource,
        content_type: str,
        display_name: str = "",
        envelope_id: int | None = None,
    ) -> BlobMetadata:
        """Stream a payload into a new blob.

        Args:
            source: Bytes, an UploadFile-like object, or an async byte iterable.
            content_type: MIME type stored with the blob.
            display_name: File name stored with the blob.
            envelope_id: Owning envelope, kept as blob metadata.

        Returns:
            Metadata of the stored blob.

        Raises:
            NoContentException: The source yielded no bytes.
            PayloadTooLargeException: The source exceeded the size limit.
            BlobWriteException: Reading the source or writing the blob failed.
        """
        chunks = self._iter_source(source)
        try:
            try:
                first = await chunks.__anext__()
            except StopAsyncIteration:
                raise NoContentException() from None

            metadata = {"envelopeId": str(envelope_id)} if envelope_id is not None else {}
            stored = await self._blob.create(
                self._bounded(first, chunks),
                content_type=content_type,
                filename=display_name,
                metadata=metadata,
            )
        except ValidationException:
            raise
        except Exception as e:
            self._logger.error(
                "Blob write failed",
                exc_info=True,
                extra={"envelope_id": envelope_id, "content_type": content_type},
            )
            raise BlobWriteException(str(e) or type(e).__name__) from e
        finally:
            await chunks.aclose()

        self._logger.debug(
            "Blob written",
            extra={
                "blob_handle": stored.handle,
                "size_bytes": stored.size_bytes,
                "content_type": content_type,
            },
        )
        return stored

    async def open(self, handle: str) -> BlobDownload | None:
        """Open a stored blob for streaming.

        Returns:
            A download, or None if the handle resolves to nothing.

        Raises:
            BlobReadException: The backend failed while opening the blob.
        """
        try:
            reader = await self._blob.open_read(handle, chunk_size=self._chunk_size)
        except Exception as e:
            raise BlobReadException(handle, str(e) or type(e).__name__) from e

        if reader is None:
            return None

        return BlobDownload(
            handle=reader.metadata.handle,
            content_type=reader.metadata.content_type,
            size_bytes=reader.metadata.size_bytes,
            chunks=self._relay(reader),
        )

    async def list_blobs(self, created_before: datetime) -> list[BlobMetadata]:
        """List blobs created before a cutoff."""
        return await self._blob.list_blobs(created_before=created_before)

    async def _iter_source(self, source: Any) -> AsyncGenerator[bytes, None]:
        """Normalize every supported source into non-empty byte chunks."""
        if isinstance(source, (bytes, bytearray, memoryview)):
            data = bytes(source)
            for offset in range(0, len(data), self._chunk_size):
                yield data[offset : offset + self._chunk_size]
        elif isinstance(source, AsyncReadable):
            while True:
                chunk = await source.read(self._chunk_size)
                if not chunk:
                    break
                yield chunk
        else:
            async for chunk in source:
                if chunk:
                    yield bytes(chunk)

    async def _bounded(
        self,
        first: bytes,
        rest: AsyncGenerator[bytes, None],
    ) -> AsyncGenerator[bytes, None]:
        """Re-attach the peeked chunk and enforce the size limit."""
        total = len(first)
        if total > self._max_size:
            raise PayloadTooLargeException(self._max_size)
        yield first
        async for chunk in rest:
            total += len(chunk)
            if total > self._max_size:
                raise PayloadTooLargeException(self._max_size)
            yield chunk

    async def _relay(self, reader: BlobReader) -> AsyncGenerator[bytes, None]:
        """Forward blob chunks, turning backend failures into BlobReadException."""
        try:
            async for chunk in reader.chunks:
                yield chunk
        except Exception as e:
            self._logger.error(
                "Blob read failed mid-stream",
                exc_info=True,
                extra={"blob_handle": reader.metadata.handle},
            )
            raise BlobReadException(
                reader.metadata.handle, str(e) or type(e).__name__
            ) from e
        finally:
            await reader.aclose()
