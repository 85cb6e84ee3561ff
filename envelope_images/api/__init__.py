"""API layer - REST endpoints."""

from envelope_images.api.main import app, create_app

__all__ = [
    "app",
    "create_app",
]
