"""FastAPI dependency injection for services and settings."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from envelope_images.application.services import EnvelopeImageStore
from envelope_images.commons.settings.loader import get_settings as _load_settings
from envelope_images.commons.settings.models import Settings
from envelope_images.infrastructure.factory import (
    InfrastructureFactory,
    get_factory,
    reset_factory,
)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Application settings loaded from config files and environment.
    """
    return _load_settings()


def get_infrastructure_factory(
    settings: Annotated[Settings, Depends(get_settings)],
) -> InfrastructureFactory:
    """Get infrastructure factory with all providers.

    Args:
        settings: Application settings.

    Returns:
        Configured infrastructure factory.
    """
    return get_factory(settings)


def get_envelope_image_store(
    factory: Annotated[InfrastructureFactory, Depends(get_infrastructure_factory)],
) -> EnvelopeImageStore:
    """Get the envelope image store.

    Args:
        factory: Infrastructure factory.

    Returns:
        Envelope image store shared across requests.
    """
    return factory.get_envelope_image_store()


# Type aliases for cleaner route signatures
SettingsDep = Annotated[Settings, Depends(get_settings)]
FactoryDep = Annotated[InfrastructureFactory, Depends(get_infrastructure_factory)]
EnvelopeImageStoreDep = Annotated[EnvelopeImageStore, Depends(get_envelope_image_store)]


async def init_services(settings: Settings) -> None:
    """Initialize all infrastructure services on startup.

    Args:
        settings: Application settings.
    """
    factory = get_factory(settings)

    # Fail fast on unreachable backends
    await factory.initialize()


async def shutdown_services() -> None:
    """Shutdown all infrastructure services."""
    try:
        factory = get_factory()
        await factory.close_all()
    except ValueError:
        pass  # Factory not initialized
    finally:
        reset_factory()
        get_settings.cache_clear()
