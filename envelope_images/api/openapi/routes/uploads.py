"""Image upload endpoints."""

from typing import Annotated

from fastapi import APIRouter, File, Form, Query, UploadFile

from envelope_images.api.dependencies import EnvelopeImageStoreDep
from envelope_images.application.dtos import EnvelopeImageResponse

router = APIRouter()


@router.post(
    "/uploads",
    response_model=EnvelopeImageResponse,
    summary="Upload an envelope image",
    description=(
        "Store an image for an envelope. Any image the envelope already had "
        "is replaced and its bytes are removed in the background."
    ),
)
async def upload_image(
    store: EnvelopeImageStoreDep,
    envelope_id: Annotated[
        str | None,
        Form(alias="envelopeId", description="Non-negative integer envelope id"),
    ] = None,
    image: Annotated[
        UploadFile | None,
        File(description="Image file"),
    ] = None,
) -> EnvelopeImageResponse:
    """Upload or replace the image of an envelope."""
    try:
        entry = await store.put(
            envelope_id,
            image,
            display_name=image.filename if image else None,
            content_type=image.content_type if image else None,
        )
    finally:
        if image is not None:
            await image.close()

    return EnvelopeImageResponse.from_entry(entry)


@router.get(
    "/uploads",
    response_model=list[EnvelopeImageResponse],
    summary="List uploads",
    description="List envelope images, most recently created first.",
)
async def list_uploads(
    store: EnvelopeImageStoreDep,
    limit: Annotated[
        int | None,
        Query(ge=1, description="Maximum items; capped by the server list limit"),
    ] = None,
) -> list[EnvelopeImageResponse]:
    """List envelope images newest first."""
    entries = await store.get_all(limit=limit)
    return [EnvelopeImageResponse.from_entry(entry) for entry in entries]
