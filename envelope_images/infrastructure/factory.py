"""Infrastructure factory for creating service instances from configuration."""

import asyncio
from typing import Any, cast

from envelope_images.application.services import (
    BlobCleanupQueue,
    EnvelopeImageStore,
    MetadataCatalog,
    TransferAdapter,
)
from envelope_images.commons.infrastructure.blob import (
    BlobStorageBase,
    GridFSBlobStorage,
    InMemoryBlobStorage,
    MinioBlobStorage,
)
from envelope_images.commons.infrastructure.documentdb import (
    DocumentDBBase,
    MongoDBDocumentDB,
)
from envelope_images.commons.settings.models import Settings
from envelope_images.commons.telemetry import get_logger
from envelope_images.domain.value_objects import ContentTypePolicy

logger = get_logger(__name__)


class InfrastructureFactory:
    """Factory for creating infrastructure service instances.

    Creates concrete implementations based on configuration settings.
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize factory with settings.

        Args:
            settings: Application settings.
        """
        self._settings = settings
        self._instances: dict[str, Any] = {}
        self._init_lock = asyncio.Lock()
        self._initialized = False

    @property
    def settings(self) -> Settings:
        """Settings the factory was built with."""
        return self._settings

    @property
    def initialized(self) -> bool:
        """Whether initialize() has completed."""
        return self._initialized

    def get_blob_storage(self) -> BlobStorageBase:
        """Get blob storage instance.

        Returns:
            Configured blob storage provider.

        Raises:
            ValueError: If provider is not supported.
        """
        if "blob_storage" not in self._instances:
            blob_settings = self._settings.blob_storage
            provider = blob_settings.provider

            if provider == "minio":
                self._instances["blob_storage"] = MinioBlobStorage(
                    endpoint=blob_settings.endpoint,
                    access_key=blob_settings.access_key,
                    secret_key=blob_settings.secret_key,
                    bucket=blob_settings.bucket,
                    secure=blob_settings.use_ssl,
                    region=blob_settings.region,
                )
            elif provider == "gridfs":
                document_db = self.get_document_db()
                if not isinstance(document_db, MongoDBDocumentDB):
                    raise ValueError("GridFS blob storage requires a MongoDB document DB")
                self._instances["blob_storage"] = GridFSBlobStorage(
                    database=document_db.database,
                    bucket=blob_settings.bucket,
                    chunk_size_bytes=blob_settings.chunk_size_bytes,
                )
            elif provider == "memory":
                self._instances["blob_storage"] = InMemoryBlobStorage()
            else:
                raise ValueError(f"Unsupported blob storage provider: {provider}")

        return cast("BlobStorageBase", self._instances["blob_storage"])

    def get_document_db(self) -> DocumentDBBase:
        """Get document database instance.

        Returns:
            Configured document database provider.
        """
        if "document_db" not in self._instances:
            doc_settings = self._settings.document_db
            self._instances["document_db"] = MongoDBDocumentDB(
                connection_string=doc_settings.build_connection_string(),
                database_name=doc_settings.database,
            )
        return cast("DocumentDBBase", self._instances["document_db"])

    def get_metadata_catalog(self) -> MetadataCatalog:
        """Get the envelope image metadata catalog."""
        if "catalog" not in self._instances:
            self._instances["catalog"] = MetadataCatalog(
                document_db=self.get_document_db(),
                collection=self._settings.document_db.collections.envelope_images,
            )
        return cast("MetadataCatalog", self._instances["catalog"])

    def get_transfer_adapter(self) -> TransferAdapter:
        """Get the transfer adapter over the configured blob store."""
        if "transfer" not in self._instances:
            self._instances["transfer"] = TransferAdapter(
                blob_storage=self.get_blob_storage(),
                max_size_bytes=self._settings.uploads.max_file_size_bytes,
                chunk_size=self._settings.blob_storage.chunk_size_bytes,
            )
        return cast("TransferAdapter", self._instances["transfer"])

    def get_cleanup_queue(self) -> BlobCleanupQueue:
        """Get the background blob cleanup queue."""
        if "cleanup" not in self._instances:
            cleanup_settings = self._settings.cleanup
            self._instances["cleanup"] = BlobCleanupQueue(
                blob_storage=self.get_blob_storage(),
                max_size=cleanup_settings.queue_size,
                workers=cleanup_settings.workers,
            )
        return cast("BlobCleanupQueue", self._instances["cleanup"])

    def get_envelope_image_store(self) -> EnvelopeImageStore:
        """Get the envelope image store with all its collaborators."""
        if "store" not in self._instances:
            uploads = self._settings.uploads
            self._instances["store"] = EnvelopeImageStore(
                catalog=self.get_metadata_catalog(),
                transfer=self.get_transfer_adapter(),
                cleanup=self.get_cleanup_queue(),
                content_types=ContentTypePolicy(
                    patterns=tuple(uploads.allowed_content_types)
                ),
                api_prefix=self._settings.server.api_prefix,
                list_limit=uploads.list_limit,
            )
        return cast("EnvelopeImageStore", self._instances["store"])

    async def initialize(self) -> None:
        """Prepare backends once: bucket, catalog indexes, cleanup workers."""
        async with self._init_lock:
            if self._initialized:
                return
            await self.get_blob_storage().ensure_ready()
            await self.get_metadata_catalog().ensure_indexes()
            self.get_cleanup_queue().start()
            self._initialized = True
            logger.info(
                "Infrastructure initialized",
                extra={"blob_provider": self._settings.blob_storage.provider},
            )

    async def close_all(self) -> None:
        """Close all service connections."""
        # Drain cleanup while the blob store is still open
        cleanup = self._instances.get("cleanup")
        if cleanup is not None:
            await cleanup.stop()

        for name, instance in self._instances.items():
            if name == "cleanup" or not hasattr(instance, "close"):
                continue
            try:
                close_result = instance.close()
                if hasattr(close_result, "__await__"):
                    await close_result
            except Exception:
                logger.warning(
                    "Failed to close service", exc_info=True, extra={"service": name}
                )

        self._instances.clear()
        self._initialized = False


class _FactoryHolder:
    """Holder for the factory singleton to avoid global statements."""

    instance: InfrastructureFactory | None = None


def get_factory(settings: Settings | None = None) -> InfrastructureFactory:
    """Get or create the infrastructure factory singleton.

    Args:
        settings: Settings to use. Required on first call.

    Returns:
        Infrastructure factory instance.

    Raises:
        ValueError: If settings not provided on first call.
    """
    if _FactoryHolder.instance is None:
        if settings is None:
            raise ValueError("Settings required to initialize factory")
        _FactoryHolder.instance = InfrastructureFactory(settings)

    return _FactoryHolder.instance


def reset_factory() -> None:
    """Reset the factory singleton (for testing)."""
    _FactoryHolder.instance = None
