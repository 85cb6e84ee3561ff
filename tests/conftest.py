"""Shared fixtures: in-process storage backends and a wired envelope image store."""

import copy
from typing import Any

import pytest

from envelope_images.application.services import (
    BlobCleanupQueue,
    EnvelopeImageStore,
    MetadataCatalog,
    TransferAdapter,
)
from envelope_images.commons.infrastructure.blob import HealthStatus, InMemoryBlobStorage
from envelope_images.commons.infrastructure.documentdb import DocumentDBBase

# PNG signature; payloads are never decoded
PNG_HEADER = b"\x89PNG\r\n\x1a\n"


def png_bytes(size: int, fill: bytes = b"\x00") -> bytes:
    """Fake PNG payload of exactly `size` bytes."""
    return (PNG_HEADER + fill * size)[:size]


def _matches(document: dict[str, Any], filters: dict[str, Any]) -> bool:
    for key, expected in filters.items():
        actual = document.get(key)
        if isinstance(expected, dict) and "$in" in expected:
            if actual not in expected["$in"]:
                return False
        elif actual != expected:
            return False
    return True


class InMemoryDocumentDB(DocumentDBBase):
    """Document DB fake with the atomicity of single-document operations.

    No method awaits between reading and writing, so each call is atomic
    with respect to other tasks on the event loop.
    """

    def __init__(self) -> None:
        self.collections: dict[str, list[dict[str, Any]]] = {}
        self.indexes: dict[str, list[tuple[list[tuple[str, int]], bool, str | None]]] = {}
        self.fail_upserts = False

    def _docs(self, collection: str) -> list[dict[str, Any]]:
        return self.collections.setdefault(collection, [])

    async def find_one(self, collection, filters):
        for doc in self._docs(collection):
            if _matches(doc, filters):
                return copy.deepcopy(doc)
        return None

    async def find(
        self,
        collection,
        filters,
        skip=0,
        limit=100,
        sort=None,
        projection=None,
    ):
        docs = [copy.deepcopy(d) for d in self._docs(collection) if _matches(d, filters)]
        for field, direction in reversed(sort or []):
            docs.sort(key=lambda d: d[field], reverse=direction < 0)
        docs = docs[skip:]
        if limit:
            docs = docs[:limit]
        if projection:
            docs = [{k: d[k] for k in ["id", *projection] if k in d} for d in docs]
        return docs

    async def upsert_one(self, collection, filters, updates, on_insert=None):
        if self.fail_upserts:
            raise ConnectionError("catalog unavailable")
        for doc in self._docs(collection):
            if _matches(doc, filters):
                previous = copy.deepcopy(doc)
                doc.update(copy.deepcopy(updates))
                return previous
        self._docs(collection).append(
            {**copy.deepcopy(updates), **copy.deepcopy(on_insert or {})}
        )
        return None

    async def find_one_and_delete(self, collection, filters):
        docs = self._docs(collection)
        for index, doc in enumerate(docs):
            if _matches(doc, filters):
                return docs.pop(index)
        return None

    async def create_index(self, collection, fields, unique=False, name=None):
        self.indexes.setdefault(collection, []).append((fields, unique, name))
        return name or "_".join(f"{f}_{d}" for f, d in fields)

    async def health_check(self):
        return HealthStatus(healthy=True, latency_ms=0.0, message="in-memory")


@pytest.fixture
def blob_storage():
    """Dict-backed blob storage."""
    return InMemoryBlobStorage()


@pytest.fixture
def document_db():
    """In-memory document database."""
    return InMemoryDocumentDB()


@pytest.fixture
def catalog(document_db):
    """Metadata catalog over the in-memory document DB."""
    return MetadataCatalog(document_db=document_db, collection="uploads")


@pytest.fixture
def transfer(blob_storage):
    """Transfer adapter with a 1 KiB limit and small chunks."""
    return TransferAdapter(blob_storage=blob_storage, max_size_bytes=1024, chunk_size=64)


@pytest.fixture
async def cleanup(blob_storage):
    """Running cleanup queue, stopped after the test."""
    queue = BlobCleanupQueue(blob_storage=blob_storage, max_size=100)
    queue.start()
    yield queue
    await queue.stop()


@pytest.fixture
def store(catalog, transfer, cleanup):
    """Envelope image store wired to in-process backends."""
    return EnvelopeImageStore(
        catalog=catalog,
        transfer=transfer,
        cleanup=cleanup,
        api_prefix="/api",
        list_limit=200,
    )


@pytest.fixture
def png():
    """Factory for fake PNG payloads of an exact size."""
    return png_bytes
