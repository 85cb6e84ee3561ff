"""Pydantic settings models for application configuration."""

from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseModel):
    """Application-level settings."""

    name: str = "envelope-images"
    version: str = "0.1.0"
    environment: Literal["dev", "staging", "prod"] = "dev"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


class ServerSettings(BaseModel):
    """HTTP server settings."""

    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    api_prefix: str = "/api"
    docs_enabled: bool = True


class BlobStorageSettings(BaseModel):
    """Blob storage settings (MinIO/S3, GridFS or in-memory)."""

    provider: Literal["minio", "gridfs", "memory"] = "minio"
    endpoint: str = "localhost:9000"
    access_key: str = ""
    secret_key: str = ""
    use_ssl: bool = False
    region: str = "us-east-1"
    bucket: str = "uploads"
    chunk_size_bytes: int = Field(default=256 * 1024, ge=1024)


class DocumentCollectionSettings(BaseModel):
    """Document DB collection names."""

    envelope_images: str = "uploads"


class DocumentDBSettings(BaseModel):
    """Document database settings (MongoDB)."""

    provider: Literal["mongodb"] = "mongodb"
    connection_string: str | None = None
    host: str = "localhost"
    port: int = 27017
    username: str = ""
    password: str = ""
    database: str = "envelope_images"
    auth_source: str = "admin"
    collections: DocumentCollectionSettings = Field(
        default_factory=DocumentCollectionSettings
    )

    def build_connection_string(self) -> str:
        """Return the explicit URI, or one assembled from host and credentials."""
        if self.connection_string:
            return self.connection_string
        if self.username and self.password:
            return (
                f"mongodb://{self.username}:{self.password}"
                f"@{self.host}:{self.port}"
                f"/?authSource={self.auth_source}"
            )
        return f"mongodb://{self.host}:{self.port}"


class UploadSettings(BaseModel):
    """Inbound upload and listing policy."""

    max_file_size_bytes: int = Field(default=10 * 1024 * 1024, ge=1)
    allowed_content_types: list[str] = Field(default_factory=lambda: ["image/*"])
    list_limit: int = Field(default=200, ge=1, le=10_000)
    cache_control: str = "public, max-age=31536000, immutable"


class CleanupSettings(BaseModel):
    """Background deletion of superseded blobs."""

    queue_size: int = Field(default=1000, ge=1)
    workers: int = Field(default=1, ge=1, le=16)
    orphan_min_age_minutes: int = Field(default=60, ge=1)


class TelemetrySettings(BaseModel):
    """Telemetry and observability settings."""

    log_format: Literal["json", "text"] = "json"
    log_level: str = "INFO"


class Settings(BaseSettings):
    """Root settings container with environment loading."""

    app: AppSettings = Field(default_factory=AppSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    blob_storage: BlobStorageSettings = Field(default_factory=BlobStorageSettings)
    document_db: DocumentDBSettings = Field(default_factory=DocumentDBSettings)
    uploads: UploadSettings = Field(default_factory=UploadSettings)
    cleanup: CleanupSettings = Field(default_factory=CleanupSettings)
    telemetry: TelemetrySettings = Field(default_factory=TelemetrySettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ENVELOPE_IMAGES__",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )
