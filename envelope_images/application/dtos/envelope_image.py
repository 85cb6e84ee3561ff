"""DTOs for envelope image operations."""

from datetime import datetime
from typing import Self

from pydantic import BaseModel, ConfigDict, Field

from envelope_images.domain.models.envelope_image import EnvelopeImage


class EnvelopeImageResponse(BaseModel):
    """Wire representation of a catalog entry.

    Field names on the wire are camelCase, matching the clients already
    integrated with the upload API.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(description="Catalog record id")
    envelope_id: int = Field(alias="envelopeId", description="Envelope id")
    url: str = Field(description="URL serving the image bytes")
    original_name: str = Field(alias="originalName", description="Uploaded file name")
    mime_type: str = Field(alias="mimeType", description="MIME type of the image")
    size: int = Field(ge=0, description="Size in bytes")
    created_at: datetime = Field(
        alias="createdAt",
        description="When the envelope first received an image",
    )
    updated_at: datetime = Field(
        alias="updatedAt",
        description="When the current image was stored",
    )

    @classmethod
    def from_entry(cls, entry: EnvelopeImage) -> Self:
        """Build the response from a domain entry."""
        return cls(
            id=entry.id,
            envelope_id=entry.envelope_id,
            url=entry.access_url,
            original_name=entry.display_name,
            mime_type=entry.content_type,
            size=entry.size_bytes,
            created_at=entry.created_at,
            updated_at=entry.updated_at,
        )


class DeleteEnvelopeImageResult(BaseModel):
    """Outcome of deleting an envelope's image."""

    deleted: bool = Field(description="Whether an entry existed and was removed")


class DeleteEnvelopeResponse(BaseModel):
    """Response for envelope image deletion."""

    ok: bool = Field(default=True, description="Request was processed")
    deleted: bool = Field(description="Whether an entry existed and was removed")
