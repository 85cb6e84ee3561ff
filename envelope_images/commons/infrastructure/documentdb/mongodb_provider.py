"""MongoDB implementation of document database."""

import time
from typing import Any

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from envelope_images.commons.infrastructure.blob.base import HealthStatus
from envelope_images.commons.infrastructure.documentdb.base import DocumentDBBase


def _to_mongo(document: dict[str, Any]) -> dict[str, Any]:
    """Copy a document, moving the domain 'id' to MongoDB's '_id'."""
    doc = document.copy()
    if "id" in doc:
        doc["_id"] = doc.pop("id")
    return doc


def _from_mongo(document: dict[str, Any] | None) -> dict[str, Any] | None:
    """Restore the domain 'id' field from '_id'."""
    if document is None:
        return None
    doc = dict(document)
    if "_id" in doc:
        doc["id"] = str(doc.pop("_id"))
    return doc


class MongoDBDocumentDB(DocumentDBBase):
    """MongoDB implementation of document database.

    Uses Motor for async operations. The client is created tz-aware so
    datetimes round-trip as UTC.
    """

    def __init__(
        self,
        connection_string: str,
        database_name: str,
    ) -> None:
        """Initialize MongoDB client.

        Args:
            connection_string: MongoDB connection URI.
            database_name: Name of the database to use.
        """
        self._client: AsyncIOMotorClient[dict[str, Any]] = AsyncIOMotorClient(
            connection_string,
            tz_aware=True,
        )
        self._db: AsyncIOMotorDatabase[dict[str, Any]] = self._client[database_name]
        self._database_name = database_name

    @property
    def database(self) -> AsyncIOMotorDatabase[dict[str, Any]]:
        """The Motor database, for components sharing this connection."""
        return self._db

    async def find_one(
        self,
        collection: str,
        filters: dict[str, Any],
    ) -> dict[str, Any] | None:
        """Find a single document matching filters."""
        doc = await self._db[collection].find_one(filters)
        return _from_mongo(doc)

    async def find(
        self,
        collection: str,
        filters: dict[str, Any],
        skip: int = 0,
        limit: int = 100,
        sort: list[tuple[str, int]] | None = None,
        projection: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        """Find documents matching filters."""
        cursor = self._db[collection].find(filters, projection)

        if sort:
            cursor = cursor.sort(sort)

        cursor = cursor.skip(skip).limit(limit)

        results: list[dict[str, Any]] = []
        async for doc in cursor:
            restored = _from_mongo(doc)
            if restored is not None:
                results.append(restored)

        return results

    async def upsert_one(
        self,
        collection: str,
        filters: dict[str, Any],
        updates: dict[str, Any],
        on_insert: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        """Atomically update or insert, returning the previous document.

        Two upserts that both miss can race to insert; with a unique index the
        loser gets DuplicateKeyError. Re-issuing it then matches the winner's
        document and applies as an ordinary update.
        """
        update_doc: dict[str, Any] = {"$set": _to_mongo(updates)}
        if on_insert:
            update_doc["$setOnInsert"] = _to_mongo(on_insert)

        async def _upsert() -> dict[str, Any] | None:
            result: dict[str, Any] | None = await self._db[
                collection
            ].find_one_and_update(
                filters,
                update_doc,
                upsert=True,
                return_document=ReturnDocument.BEFORE,
            )
            return result

        try:
            previous = await _upsert()
        except DuplicateKeyError:
            previous = await _upsert()

        return _from_mongo(previous)

    async def find_one_and_delete(
        self,
        collection: str,
        filters: dict[str, Any],
    ) -> dict[str, Any] | None:
        """Atomically remove the document matching filters."""
        doc = await self._db[collection].find_one_and_delete(filters)
        return _from_mongo(doc)

    async def create_index(
        self,
        collection: str,
        fields: list[tuple[str, int]],
        unique: bool = False,
        name: str | None = None,
    ) -> str:
        """Create an index on the collection."""
        kwargs: dict[str, Any] = {"unique": unique}
        if name:
            kwargs["name"] = name
        index_name = await self._db[collection].create_index(fields, **kwargs)
        return str(index_name)

    async def health_check(self) -> HealthStatus:
        """Check service health."""
        start = time.perf_counter()
        try:
            await self._client.admin.command("ping")
            latency_ms = (time.perf_counter() - start) * 1000
            return HealthStatus(
                healthy=True,
                latency_ms=latency_ms,
                message="MongoDB is healthy",
                details={"database": self._database_name},
            )
        except Exception as e:
            latency_ms = (time.perf_counter() - start) * 1000
            return HealthStatus(
                healthy=False,
                latency_ms=latency_ms,
                message=f"MongoDB health check failed: {e}",
                details={"database": self._database_name, "error": str(e)},
            )

    async def close(self) -> None:
        """Close the client connection."""
        self._client.close()
