"""Metadata catalog mapping envelope ids to their current image."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import uuid4

from envelope_images.commons.infrastructure.documentdb.base import DocumentDBBase
from envelope_images.commons.telemetry import get_logger
from envelope_images.domain.models.envelope_image import EnvelopeImage


@dataclass
class CatalogUpsert:
    """Result of an upsert: the entry it replaced and the entry now live."""

    previous: EnvelopeImage | None
    current: EnvelopeImage


class MetadataCatalog:
    """Durable envelope id -> EnvelopeImage mapping.

    One document per envelope id, enforced by a unique index. Upsert and
    remove are single atomic document operations, which is the only
    per-envelope serialization the store relies on.
    """

    def __init__(self, document_db: DocumentDBBase, collection: str) -> None:
        """Initialize the catalog.

        Args:
            document_db: Document database provider.
            collection: Collection holding the entries.
        """
        self._doc_db = document_db
        self._collection = collection
        self._logger = get_logger(__name__)

    async def ensure_indexes(self) -> None:
        """Create the unique envelope index and the listing index."""
        await self._doc_db.create_index(
            self._collection,
            [("envelope_id", 1)],
            unique=True,
            name="envelope_id_unique",
        )
        await self._doc_db.create_index(
            self._collection,
            [("created_at", -1)],
            name="created_at_desc",
        )
        self._logger.debug(
            "Catalog indexes ensured",
            extra={"collection": self._collection},
        )

    async def upsert(
        self,
        envelope_id: int,
        *,
        blob_handle: str,
        display_name: str,
        content_type: str,
        size_bytes: int,
        access_url: str,
    ) -> CatalogUpsert:
        """Point an envelope at a new blob, creating the entry if needed.

        id and created_at are only written on insert, so they survive
        replaces. The document replaced by this call is returned alongside the
        new one; under concurrent upserts each call sees exactly the state it
        overwrote.
        """
        now = datetime.now(UTC)
        new_id = str(uuid4())
        updates = {
            "envelope_id": envelope_id,
            "blob_handle": blob_handle,
            "display_name": display_name,
            "content_type": content_type,
            "size_bytes": size_bytes,
            "access_url": access_url,
            "updated_at": now,
        }

        previous_doc = await self._doc_db.upsert_one(
            self._collection,
            {"envelope_id": envelope_id},
            updates,
            on_insert={"id": new_id, "created_at": now},
        )
        previous = EnvelopeImage.from_document(previous_doc) if previous_doc else None

        current = EnvelopeImage(
            id=previous.id if previous else new_id,
            created_at=previous.created_at if previous else now,
            **updates,
        )
        self._logger.debug(
            "Catalog entry upserted",
            extra={
                "envelope_id": envelope_id,
                "blob_handle": blob_handle,
                "replaced": previous is not None,
            },
        )
        return CatalogUpsert(previous=previous, current=current)

    async def find_by_envelope_id(self, envelope_id: int) -> EnvelopeImage | None:
        """Return the entry for an envelope, or None."""
        doc = await self._doc_db.find_one(
            self._collection,
            {"envelope_id": envelope_id},
        )
        return EnvelopeImage.from_document(doc) if doc else None

    async def remove_by_envelope_id(self, envelope_id: int) -> EnvelopeImage | None:
        """Atomically remove and return the entry for an envelope, or None."""
        doc = await self._doc_db.find_one_and_delete(
            self._collection,
            {"envelope_id": envelope_id},
        )
        if doc is None:
            return None
        self._logger.debug(
            "Catalog entry removed",
            extra={"envelope_id": envelope_id, "blob_handle": doc.get("blob_handle")},
        )
        return EnvelopeImage.from_document(doc)

    async def find_all(
        self,
        limit: int | None = None,
        newest_first: bool = True,
    ) -> list[EnvelopeImage]:
        """List entries ordered by created_at.

        Args:
            limit: Maximum entries to return; None returns every entry.
            newest_first: Sort direction on created_at.
        """
        docs = await self._doc_db.find(
            self._collection,
            {},
            limit=limit or 0,
            sort=[("created_at", -1 if newest_first else 1)],
        )
        return [EnvelopeImage.from_document(doc) for doc in docs]

    async def referenced_handles(self, handles: Iterable[str]) -> set[str]:
        """Return the subset of handles referenced by a live entry."""
        wanted = list(dict.fromkeys(handles))
        if not wanted:
            return set()
        docs = await self._doc_db.find(
            self._collection,
            {"blob_handle": {"$in": wanted}},
            limit=len(wanted),
            projection=["blob_handle"],
        )
        return {doc["blob_handle"] for doc in docs}
