"""Settings management module."""

from envelope_images.commons.settings.loader import (
    SettingsLoader,
    get_settings,
    reset_settings,
)
from envelope_images.commons.settings.models import (
    AppSettings,
    BlobStorageSettings,
    CleanupSettings,
    DocumentCollectionSettings,
    DocumentDBSettings,
    ServerSettings,
    Settings,
    TelemetrySettings,
    UploadSettings,
)

__all__ = [
    # Loader
    "SettingsLoader",
    "get_settings",
    "reset_settings",
    # Main settings
    "Settings",
    "AppSettings",
    "ServerSettings",
    # Storage
    "BlobStorageSettings",
    "DocumentDBSettings",
    "DocumentCollectionSettings",
    # Uploads & cleanup
    "UploadSettings",
    "CleanupSettings",
    # Telemetry
    "TelemetrySettings",
]
