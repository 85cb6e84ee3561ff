"""API route handlers."""

from envelope_images.api.openapi.routes import envelopes, files, health, uploads

__all__ = [
    "envelopes",
    "files",
    "health",
    "uploads",
]
