"""Blob download endpoint."""

from fastapi import APIRouter
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from envelope_images.api.dependencies import EnvelopeImageStoreDep, SettingsDep
from envelope_images.domain.exceptions import BlobNotFoundException

router = APIRouter()


@router.get(
    "/files/{handle}",
    response_class=StreamingResponse,
    summary="Download image bytes",
    description=(
        "Stream the bytes behind an access URL. Handles are never reused, so "
        "responses are cacheable indefinitely."
    ),
    responses={404: {"description": "Unknown or deleted handle"}},
)
async def get_file(
    handle: str,
    store: EnvelopeImageStoreDep,
    settings: SettingsDep,
) -> StreamingResponse:
    """Stream a stored blob."""
    download = await store.read_blob(handle)
    if download is None:
        raise BlobNotFoundException(handle)

    return StreamingResponse(
        download.chunks,
        media_type=download.content_type or "application/octet-stream",
        headers={
            "Cache-Control": settings.uploads.cache_control,
            "Content-Length": str(download.size_bytes),
        },
        background=BackgroundTask(download.aclose),
    )
