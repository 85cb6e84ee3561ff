"""Unit tests for the metadata catalog."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

from envelope_images.application.services.catalog import MetadataCatalog


def _fields(handle: str, size: int = 10) -> dict:
    return {
        "blob_handle": handle,
        "display_name": f"{handle}.png",
        "content_type": "image/png",
        "size_bytes": size,
        "access_url": f"/api/files/{handle}",
    }


class TestMetadataCatalog:
    """Tests for MetadataCatalog over the in-memory document DB."""

    async def test_ensure_indexes(self, catalog, document_db):
        await catalog.ensure_indexes()

        indexes = document_db.indexes["uploads"]
        assert ([("envelope_id", 1)], True, "envelope_id_unique") in indexes
        assert ([("created_at", -1)], False, "created_at_desc") in indexes

    async def test_upsert_inserts_new_entry(self, catalog):
        result = await catalog.upsert(7, **_fields("h1"))

        assert result.previous is None
        assert result.current.envelope_id == 7
        assert result.current.blob_handle == "h1"
        assert await catalog.find_by_envelope_id(7) == result.current

    async def test_upsert_returns_replaced_entry(self, catalog):
        first = await catalog.upsert(7, **_fields("h1"))
        second = await catalog.upsert(7, **_fields("h2", size=20))

        assert second.previous is not None
        assert second.previous.blob_handle == "h1"
        assert second.current.blob_handle == "h2"
        assert second.current.id == first.current.id
        assert second.current.created_at == first.current.created_at

        stored = await catalog.find_by_envelope_id(7)
        assert stored is not None
        assert stored.size_bytes == 20

    async def test_upsert_passes_insert_only_fields(self):
        document_db = AsyncMock()
        document_db.upsert_one.return_value = None
        catalog = MetadataCatalog(document_db=document_db, collection="uploads")

        await catalog.upsert(3, **_fields("h1"))

        collection, filters, updates = document_db.upsert_one.call_args[0]
        on_insert = document_db.upsert_one.call_args[1]["on_insert"]
        assert collection == "uploads"
        assert filters == {"envelope_id": 3}
        assert "id" not in updates
        assert "created_at" not in updates
        assert "updated_at" in updates
        assert set(on_insert) == {"id", "created_at"}

    async def test_find_missing_returns_none(self, catalog):
        assert await catalog.find_by_envelope_id(1) is None

    async def test_remove_returns_removed_entry(self, catalog):
        await catalog.upsert(7, **_fields("h1"))

        removed = await catalog.remove_by_envelope_id(7)

        assert removed is not None
        assert removed.blob_handle == "h1"
        assert await catalog.find_by_envelope_id(7) is None
        assert await catalog.remove_by_envelope_id(7) is None

    async def test_find_all_sorted_and_limited(self, catalog, document_db):
        for envelope_id in range(5):
            await catalog.upsert(envelope_id, **_fields(f"h{envelope_id}"))
        for doc in document_db.collections["uploads"]:
            doc["created_at"] = datetime(2024, 1, 1 + doc["envelope_id"], tzinfo=UTC)

        newest = await catalog.find_all(limit=2)
        oldest = await catalog.find_all(newest_first=False)

        assert [e.envelope_id for e in newest] == [4, 3]
        assert [e.envelope_id for e in oldest] == [0, 1, 2, 3, 4]

    async def test_referenced_handles(self, catalog):
        await catalog.upsert(1, **_fields("live-1"))
        await catalog.upsert(2, **_fields("live-2"))

        referenced = await catalog.referenced_handles(["live-1", "gone", "live-2"])

        assert referenced == {"live-1", "live-2"}
        assert await catalog.referenced_handles([]) == set()

    async def test_naive_datetimes_read_back_as_utc(self, catalog, document_db):
        await catalog.upsert(1, **_fields("h1"))
        doc = document_db.collections["uploads"][0]
        doc["created_at"] = datetime(2024, 5, 1, 12, 0)
        doc["updated_at"] = datetime(2024, 5, 1, 12, 0)

        entry = await catalog.find_by_envelope_id(1)

        assert entry is not None
        assert entry.created_at.utcoffset() == timedelta(0)
