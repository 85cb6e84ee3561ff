"""Abstract base class for document database operations."""

from abc import ABC, abstractmethod
from typing import Any

from envelope_images.commons.infrastructure.blob.base import HealthStatus


class DocumentDBBase(ABC):
    """Abstract base class for document database operations.

    Documents use an `id` field on the way in and out; providers map it to
    their native primary key. Single-document writes are atomic.
    """

    @abstractmethod
    async def find_one(
        self,
        collection: str,
        filters: dict[str, Any],
    ) -> dict[str, Any] | None:
        """Find a single document matching filters.

        Args:
            collection: Collection/table name.
            filters: Query filters.

        Returns:
            First matching document or None.
        """

    @abstractmethod
    async def find(
        self,
        collection: str,
        filters: dict[str, Any],
        skip: int = 0,
        limit: int = 100,
        sort: list[tuple[str, int]] | None = None,
        projection: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        """Find documents matching filters.

        Args:
            collection: Collection/table name.
            filters: Query filters.
            skip: Number of documents to skip.
            limit: Maximum documents to return; 0 means no limit.
            sort: Sort specification [(field, direction)].
                  Direction: 1 for ascending, -1 for descending.
            projection: Optional list of fields to return.

        Returns:
            List of matching documents.
        """

    @abstractmethod
    async def upsert_one(
        self,
        collection: str,
        filters: dict[str, Any],
        updates: dict[str, Any],
        on_insert: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        """Atomically update or insert the document matching filters.

        Concurrent upserts on the same filter serialize; the last one wins.

        Args:
            collection: Collection/table name.
            filters: Query filters identifying the document.
            updates: Fields set on every call.
            on_insert: Fields set only when the document is created. Must not
                overlap with `updates`.

        Returns:
            The document as it was before this call, or None if it was inserted.
        """

    @abstractmethod
    async def find_one_and_delete(
        self,
        collection: str,
        filters: dict[str, Any],
    ) -> dict[str, Any] | None:
        """Atomically remove the document matching filters.

        Returns:
            The removed document, or None if nothing matched.
        """

    @abstractmethod
    async def create_index(
        self,
        collection: str,
        fields: list[tuple[str, int]],
        unique: bool = False,
        name: str | None = None,
    ) -> str:
        """Create an index on the collection.

        Args:
            collection: Collection/table name.
            fields: Index fields [(field, direction)].
            unique: Whether index should be unique.
            name: Optional index name.

        Returns:
            Index name.
        """

    @abstractmethod
    async def health_check(self) -> HealthStatus:
        """Check service health."""

    async def close(self) -> None:  # noqa: B027
        """Release client resources. No-op by default."""
