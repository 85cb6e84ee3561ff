"""Envelope image store: one replaceable image per envelope."""

from datetime import UTC, datetime, timedelta

from envelope_images.application.dtos.envelope_image import DeleteEnvelopeImageResult
from envelope_images.application.services.catalog import MetadataCatalog
from envelope_images.application.services.cleanup import BlobCleanupQueue
from envelope_images.application.services.transfer import (
    BlobDownload,
    ByteSource,
    TransferAdapter,
)
from envelope_images.commons.telemetry import LogContext, get_logger, timed
from envelope_images.domain.exceptions import (
    CatalogWriteException,
    NoContentException,
)
from envelope_images.domain.models.envelope_image import (
    EnvelopeImage,
    build_access_url,
)
from envelope_images.domain.value_objects import ContentTypePolicy, EnvelopeId

logger = get_logger(__name__)


class EnvelopeImageStore:
    """Binds each envelope to exactly one current image blob.

    Handles:
    - Replace-on-upload: write the new blob, swap the catalog entry, then
      delete the superseded blob in the background
    - Lookup and listing straight from the catalog
    - Delete: remove the entry, then delete its blob in the background
    - Streaming blob reads by handle

    The catalog is the source of truth for what is live. A blob is only
    handed to the cleanup queue after the catalog change that orphaned it
    has been acknowledged, so a live entry never points at a deleted blob.
    """

    def __init__(
        self,
        catalog: MetadataCatalog,
        transfer: TransferAdapter,
        cleanup: BlobCleanupQueue,
        content_types: ContentTypePolicy | None = None,
        api_prefix: str = "/api",
        list_limit: int = 200,
    ) -> None:
        """Initialize the store.

        Args:
            catalog: Metadata catalog.
            transfer: Transfer adapter over the blob store.
            cleanup: Background deletion queue.
            content_types: Allowed upload content types.
            api_prefix: Prefix of the public file URLs.
            list_limit: Upper bound on listing sizes.
        """
        self._catalog = catalog
        self._transfer = transfer
        self._cleanup = cleanup
        self._content_types = content_types or ContentTypePolicy()
        self._api_prefix = api_prefix
        self._list_limit = list_limit

    @timed
    async def put(
        self,
        envelope_id: object,
        source: ByteSource | None,
        display_name: str | None,
        content_type: str | None,
    ) -> EnvelopeImage:
        """Store an image for an envelope, replacing any previous one.

        Args:
            envelope_id: Envelope id; ints and digit strings are accepted.
            source: Image bytes, an UploadFile, or an async byte iterable.
            display_name: Original file name.
            content_type: MIME type of the upload.

        Returns:
            The live catalog entry. Its blob is fully written.

        Raises:
            InvalidEnvelopeIdException: envelope_id is not a non-negative integer.
            NoContentException: No source or an empty one.
            UnsupportedContentTypeException: Content type not allowed.
            PayloadTooLargeException: Source exceeds the size limit.
            BlobWriteException: Writing the blob failed; catalog untouched.
            CatalogWriteException: The catalog update failed; the new blob was
                discarded (or kept for the orphan sweep when the outcome is
                unknown) and the previous entry, if any, is still live.
        """
        eid = EnvelopeId.parse(envelope_id).value
        if source is None:
            raise NoContentException()
        mime_type = self._content_types.require(content_type)
        name = display_name or ""

        with LogContext(envelope_id=eid):
            stored = await self._transfer.write(
                source,
                content_type=mime_type,
                display_name=name,
                envelope_id=eid,
            )

            try:
                result = await self._catalog.upsert(
                    eid,
                    blob_handle=stored.handle,
                    display_name=name,
                    content_type=mime_type,
                    size_bytes=stored.size_bytes,
                    access_url=build_access_url(self._api_prefix, stored.handle),
                )
            except Exception as e:
                return await self._recover_failed_upsert(eid, stored.handle, e)

            previous = result.previous
            if previous is not None and previous.blob_handle != stored.handle:
                self._cleanup.schedule(previous.blob_handle, reason="replaced")

            logger.info(
                "Envelope image stored",
                extra={
                    "blob_handle": stored.handle,
                    "size_bytes": stored.size_bytes,
                    "content_type": mime_type,
                    "replaced": previous is not None,
                },
            )
            return result.current

    async def _recover_failed_upsert(
        self, eid: int, handle: str, error: Exception
    ) -> EnvelopeImage:
        """Resolve an upsert that raised, deleting the new blob only if unreferenced.

        A write can be applied by the server even though the client saw an
        error (connection reset, timeout), so the catalog is read back first.
        If the entry already points at `handle` the upload succeeded. If the
        read fails as well the blob is kept and left to the orphan sweep.

        Raises:
            CatalogWriteException: The upsert did not take effect or its
                outcome is unknown.
        """
        reason = str(error) or type(error).__name__
        try:
            current = await self._catalog.find_by_envelope_id(eid)
        except Exception:
            logger.error(
                "Catalog upsert failed and its outcome is unknown, keeping new blob",
                exc_info=True,
                extra={"blob_handle": handle, "error": reason},
            )
            raise CatalogWriteException(eid, reason) from error

        if current is not None and current.blob_handle == handle:
            # The displaced blob is unknown here; the orphan sweep reclaims it
            logger.warning(
                "Catalog upsert reported an error but was applied",
                extra={"blob_handle": handle, "error": reason},
            )
            return current

        logger.error(
            "Catalog upsert failed, discarding new blob",
            exc_info=error,
            extra={"blob_handle": handle},
        )
        await self._cleanup.delete_now(handle, reason="catalog_failed")
        raise CatalogWriteException(eid, reason) from error

    async def get(self, envelope_id: object) -> EnvelopeImage | None:
        """Return the current entry for an envelope, or None."""
        eid = EnvelopeId.parse(envelope_id).value
        return await self._catalog.find_by_envelope_id(eid)

    async def get_all(self, limit: int | None = None) -> list[EnvelopeImage]:
        """List entries, newest created_at first, never more than the list limit."""
        if limit is not None and limit <= 0:
            return []
        bounded = self._list_limit if limit is None else min(limit, self._list_limit)
        return await self._catalog.find_all(limit=bounded)

    async def get_all_by_envelope(self) -> dict[int, EnvelopeImage]:
        """Map every envelope id to its entry."""
        entries = await self._catalog.find_all(limit=None)
        return {entry.envelope_id: entry for entry in entries}

    @timed
    async def delete(self, envelope_id: object) -> DeleteEnvelopeImageResult:
        """Remove an envelope's image. Absent envelopes are not an error."""
        eid = EnvelopeId.parse(envelope_id).value

        with LogContext(envelope_id=eid):
            removed = await self._catalog.remove_by_envelope_id(eid)
            if removed is None:
                logger.debug("No image to delete")
                return DeleteEnvelopeImageResult(deleted=False)

            self._cleanup.schedule(removed.blob_handle, reason="deleted")
            logger.info(
                "Envelope image deleted",
                extra={"blob_handle": removed.blob_handle},
            )
            return DeleteEnvelopeImageResult(deleted=True)

    async def read_blob(self, handle: str) -> BlobDownload | None:
        """Open a blob for streaming; None for unknown or stale handles."""
        return await self._transfer.open(handle)

    async def sweep_orphans(
        self,
        min_age: timedelta = timedelta(hours=1),
        dry_run: bool = False,
    ) -> list[str]:
        """Delete blobs that no catalog entry references.

        Only blobs older than `min_age` are considered, so blobs of uploads
        that have not reached the catalog yet are left alone.

        Returns:
            Handles of the orphans found (deleted unless dry_run).
        """
        cutoff = datetime.now(UTC) - min_age
        blobs = await self._transfer.list_blobs(created_before=cutoff)
        handles = [blob.handle for blob in blobs]
        referenced = await self._catalog.referenced_handles(handles)
        orphans = [handle for handle in handles if handle not in referenced]

        logger.info(
            "Orphan sweep",
            extra={
                "scanned": len(handles),
                "orphans": len(orphans),
                "dry_run": dry_run,
            },
        )
        if not dry_run:
            for handle in orphans:
                await self._cleanup.delete_now(handle, reason="orphan_sweep")
        return orphans
