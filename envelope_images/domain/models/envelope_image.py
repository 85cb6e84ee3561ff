"""Envelope image domain model."""

from datetime import UTC, datetime
from typing import Any, Self
from uuid import uuid4

from pydantic import BaseModel, Field


def build_access_url(api_prefix: str, blob_handle: str) -> str:
    """Derive the public URL for a blob handle.

    The URL depends only on the handle, so it stays valid for as long as the
    entry referencing the handle exists.
    """
    return f"{api_prefix.rstrip('/')}/files/{blob_handle}"


class EnvelopeImage(BaseModel):
    """Catalog entry binding one envelope to its current image blob.

    There is at most one entry per envelope_id. Re-uploading replaces the
    blob handle and provenance fields in place; id and created_at survive
    the replace.
    """

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Internal UUID for this catalog record",
    )
    envelope_id: int = Field(ge=0, description="Envelope this image belongs to")
    blob_handle: str = Field(min_length=1, description="Handle in the blob store")
    display_name: str = Field(default="", description="Original file name")
    content_type: str = Field(description="MIME type of the stored bytes")
    size_bytes: int = Field(ge=0, description="Number of bytes stored")
    access_url: str = Field(description="URL serving the blob")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the envelope first received an image",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the current image was stored",
    )

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> Self:
        """Build an entry from a catalog document.

        Datetimes read back from MongoDB without tz info are UTC.
        """
        doc = dict(document)
        for key in ("created_at", "updated_at"):
            value = doc.get(key)
            if isinstance(value, datetime) and value.tzinfo is None:
                doc[key] = value.replace(tzinfo=UTC)
        return cls.model_validate(doc)

    def to_document(self) -> dict[str, Any]:
        """Serialize for the catalog, keeping datetimes native for sorting."""
        return self.model_dump()
