"""Unit tests for MongoDB document database provider."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError


class _AsyncCursor:
    """Minimal Motor cursor stand-in supporting chaining and async iteration."""

    def __init__(self, docs):
        self._docs = list(docs)
        self.sort = MagicMock(return_value=self)
        self.skip = MagicMock(return_value=self)
        self.limit = MagicMock(return_value=self)

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for doc in self._docs:
            yield doc


class TestMongoDBDocumentDB:
    """Tests for MongoDBDocumentDB provider.

    These tests verify the ID mapping behavior between domain model 'id'
    and MongoDB's '_id' field, and the atomic upsert used by the catalog.
    """

    @pytest.fixture
    def mock_motor_client(self):
        """Create a mock Motor client."""
        with patch(
            "envelope_images.commons.infrastructure.documentdb.mongodb_provider.AsyncIOMotorClient"
        ) as mock_client_class:
            mock_client = MagicMock()
            mock_db = MagicMock()
            mock_collection = MagicMock()

            mock_client.__getitem__ = MagicMock(return_value=mock_db)
            mock_db.__getitem__ = MagicMock(return_value=mock_collection)

            mock_client_class.return_value = mock_client

            yield {
                "client_class": mock_client_class,
                "client": mock_client,
                "db": mock_db,
                "collection": mock_collection,
            }

    @pytest.fixture
    def mongodb_provider(self, mock_motor_client):
        """Create MongoDB provider with mocked client."""
        from envelope_images.commons.infrastructure.documentdb.mongodb_provider import (
            MongoDBDocumentDB,
        )

        return MongoDBDocumentDB(
            connection_string="mongodb://localhost:27017",
            database_name="test_db",
        )

    def test_client_is_tz_aware(self, mongodb_provider, mock_motor_client):
        mock_motor_client["client_class"].assert_called_once_with(
            "mongodb://localhost:27017", tz_aware=True
        )
        assert mongodb_provider.database is mock_motor_client["db"]

    # =========================================================================
    # Read Tests
    # =========================================================================

    async def test_find_one_maps_id(self, mongodb_provider, mock_motor_client):
        oid = ObjectId()
        collection = mock_motor_client["collection"]
        collection.find_one = AsyncMock(return_value={"_id": oid, "envelope_id": 7})

        result = await mongodb_provider.find_one("uploads", {"envelope_id": 7})

        assert result == {"id": str(oid), "envelope_id": 7}

    async def test_find_one_returns_none(self, mongodb_provider, mock_motor_client):
        mock_motor_client["collection"].find_one = AsyncMock(return_value=None)
        assert await mongodb_provider.find_one("uploads", {"envelope_id": 1}) is None

    async def test_find_applies_sort_skip_limit(
        self, mongodb_provider, mock_motor_client
    ):
        cursor = _AsyncCursor([{"_id": "a", "n": 1}, {"_id": "b", "n": 2}])
        collection = mock_motor_client["collection"]
        collection.find = MagicMock(return_value=cursor)

        results = await mongodb_provider.find(
            "uploads",
            {},
            skip=5,
            limit=0,
            sort=[("created_at", -1)],
            projection=["blob_handle"],
        )

        collection.find.assert_called_once_with({}, ["blob_handle"])
        cursor.sort.assert_called_once_with([("created_at", -1)])
        cursor.skip.assert_called_once_with(5)
        cursor.limit.assert_called_once_with(0)
        assert results == [{"id": "a", "n": 1}, {"id": "b", "n": 2}]

    async def test_find_without_sort(self, mongodb_provider, mock_motor_client):
        cursor = _AsyncCursor([])
        mock_motor_client["collection"].find = MagicMock(return_value=cursor)

        assert await mongodb_provider.find("uploads", {}) == []
        cursor.sort.assert_not_called()

    # =========================================================================
    # Upsert Tests
    # =========================================================================

    async def test_upsert_sets_and_sets_on_insert(
        self, mongodb_provider, mock_motor_client
    ):
        collection = mock_motor_client["collection"]
        collection.find_one_and_update = AsyncMock(return_value=None)

        previous = await mongodb_provider.upsert_one(
            "uploads",
            {"envelope_id": 7},
            {"blob_handle": "new"},
            on_insert={"id": "rec-1", "created_at": "t0"},
        )

        assert previous is None
        args, kwargs = collection.find_one_and_update.call_args
        assert args[0] == {"envelope_id": 7}
        assert args[1] == {
            "$set": {"blob_handle": "new"},
            "$setOnInsert": {"_id": "rec-1", "created_at": "t0"},
        }
        assert kwargs["upsert"] is True
        assert kwargs["return_document"] == ReturnDocument.BEFORE

    async def test_upsert_without_on_insert(self, mongodb_provider, mock_motor_client):
        collection = mock_motor_client["collection"]
        collection.find_one_and_update = AsyncMock(return_value=None)

        await mongodb_provider.upsert_one("uploads", {"envelope_id": 7}, {"x": 1})

        update_doc = collection.find_one_and_update.call_args[0][1]
        assert "$setOnInsert" not in update_doc

    async def test_upsert_returns_previous_document(
        self, mongodb_provider, mock_motor_client
    ):
        collection = mock_motor_client["collection"]
        collection.find_one_and_update = AsyncMock(
            return_value={"_id": "rec-1", "blob_handle": "old"}
        )

        previous = await mongodb_provider.upsert_one(
            "uploads", {"envelope_id": 7}, {"blob_handle": "new"}
        )

        assert previous == {"id": "rec-1", "blob_handle": "old"}

    async def test_upsert_retries_once_on_duplicate_key(
        self, mongodb_provider, mock_motor_client
    ):
        collection = mock_motor_client["collection"]
        collection.find_one_and_update = AsyncMock(
            side_effect=[
                DuplicateKeyError("E11000 duplicate key"),
                {"_id": "winner", "blob_handle": "theirs"},
            ]
        )

        previous = await mongodb_provider.upsert_one(
            "uploads", {"envelope_id": 7}, {"blob_handle": "mine"}
        )

        assert collection.find_one_and_update.await_count == 2
        assert previous == {"id": "winner", "blob_handle": "theirs"}

    async def test_upsert_second_duplicate_propagates(
        self, mongodb_provider, mock_motor_client
    ):
        collection = mock_motor_client["collection"]
        collection.find_one_and_update = AsyncMock(
            side_effect=DuplicateKeyError("E11000 duplicate key")
        )

        with pytest.raises(DuplicateKeyError):
            await mongodb_provider.upsert_one("uploads", {"envelope_id": 7}, {"x": 1})

    # =========================================================================
    # Delete / Index Tests
    # =========================================================================

    async def test_find_one_and_delete(self, mongodb_provider, mock_motor_client):
        collection = mock_motor_client["collection"]
        collection.find_one_and_delete = AsyncMock(
            return_value={"_id": "rec-1", "blob_handle": "h"}
        )

        removed = await mongodb_provider.find_one_and_delete(
            "uploads", {"envelope_id": 7}
        )

        collection.find_one_and_delete.assert_awaited_once_with({"envelope_id": 7})
        assert removed == {"id": "rec-1", "blob_handle": "h"}

    async def test_find_one_and_delete_missing(
        self, mongodb_provider, mock_motor_client
    ):
        mock_motor_client["collection"].find_one_and_delete = AsyncMock(
            return_value=None
        )
        assert (
            await mongodb_provider.find_one_and_delete("uploads", {"envelope_id": 7})
            is None
        )

    async def test_create_index_with_name(self, mongodb_provider, mock_motor_client):
        collection = mock_motor_client["collection"]
        collection.create_index = AsyncMock(return_value="envelope_id_unique")

        name = await mongodb_provider.create_index(
            "uploads", [("envelope_id", 1)], unique=True, name="envelope_id_unique"
        )

        assert name == "envelope_id_unique"
        collection.create_index.assert_awaited_once_with(
            [("envelope_id", 1)], unique=True, name="envelope_id_unique"
        )

    # =========================================================================
    # Health / Lifecycle Tests
    # =========================================================================

    async def test_health_check_healthy(self, mongodb_provider, mock_motor_client):
        mock_motor_client["client"].admin.command = AsyncMock(return_value={"ok": 1})

        status = await mongodb_provider.health_check()

        assert status.healthy is True
        assert status.details == {"database": "test_db"}

    async def test_health_check_unhealthy(self, mongodb_provider, mock_motor_client):
        mock_motor_client["client"].admin.command = AsyncMock(
            side_effect=ConnectionError("no route")
        )

        status = await mongodb_provider.health_check()

        assert status.healthy is False
        assert "no route" in (status.message or "")

    async def test_close(self, mongodb_provider, mock_motor_client):
        await mongodb_provider.close()
        mock_motor_client["client"].close.assert_called_once()
