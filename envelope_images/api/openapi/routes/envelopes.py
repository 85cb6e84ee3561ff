"""Envelope lookup and deletion endpoints."""

from fastapi import APIRouter

from envelope_images.api.dependencies import EnvelopeImageStoreDep
from envelope_images.application.dtos import (
    DeleteEnvelopeResponse,
    EnvelopeImageResponse,
)
from envelope_images.domain.exceptions import EnvelopeImageNotFoundException
from envelope_images.domain.value_objects import EnvelopeId

router = APIRouter()


@router.get(
    "/envelopes",
    response_model=dict[str, EnvelopeImageResponse],
    summary="Images by envelope",
    description="Every stored image keyed by its envelope id.",
)
async def list_envelopes(
    store: EnvelopeImageStoreDep,
) -> dict[str, EnvelopeImageResponse]:
    """Map envelope ids to their images."""
    by_envelope = await store.get_all_by_envelope()
    return {
        str(envelope_id): EnvelopeImageResponse.from_entry(entry)
        for envelope_id, entry in by_envelope.items()
    }


@router.get(
    "/envelopes/{envelope_id}",
    response_model=EnvelopeImageResponse,
    summary="Get envelope image",
    description="Get the image currently bound to an envelope.",
)
async def get_envelope(
    envelope_id: str,
    store: EnvelopeImageStoreDep,
) -> EnvelopeImageResponse:
    """Get the image of a single envelope."""
    entry = await store.get(envelope_id)
    if entry is None:
        raise EnvelopeImageNotFoundException(EnvelopeId.parse(envelope_id).value)
    return EnvelopeImageResponse.from_entry(entry)


@router.delete(
    "/envelopes/{envelope_id}",
    response_model=DeleteEnvelopeResponse,
    summary="Delete envelope image",
    description=(
        "Remove the image bound to an envelope. Deleting an envelope without "
        "an image succeeds with deleted=false."
    ),
)
async def delete_envelope(
    envelope_id: str,
    store: EnvelopeImageStoreDep,
) -> DeleteEnvelopeResponse:
    """Delete the image of an envelope."""
    result = await store.delete(envelope_id)
    return DeleteEnvelopeResponse(ok=True, deleted=result.deleted)
