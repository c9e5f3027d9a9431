"""Infrastructure factory for creating service instances from configuration."""

from typing import Any, cast

from src.commons.infrastructure.blob import (
    BlobStorageBase,
    InMemoryBlobStorage,
    MinioBlobStorage,
)
from src.commons.infrastructure.documentdb import (
    DocumentDBBase,
    InMemoryDocumentDB,
    MongoDBDocumentDB,
)
from src.commons.infrastructure.queue import (
    InMemoryQueuePublisher,
    NatsJetStreamPublisher,
    QueuePublisherBase,
)
from src.commons.infrastructure.vectordb import (
    InMemoryVectorDB,
    QdrantVectorDB,
    VectorDBBase,
)
from src.commons.settings.models import Settings
from src.commons.telemetry import get_logger
from src.infrastructure.embeddings import (
    EmbeddingServiceBase,
    HashEmbeddingService,
    OpenAIEmbeddingService,
)
from src.infrastructure.transcription import (
    OpenAIAudioTranscription,
    StaticTranscriptionService,
    TranscriptionServiceBase,
)


class InfrastructureFactory:
    """Factory for creating infrastructure service instances.

    Each ``provider`` setting picks the production adapter or its
    in-memory counterpart. Instances are cached for the factory lifetime.
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize factory with settings.

        Args:
            settings: Application settings.
        """
        self._settings = settings
        self._instances: dict[str, Any] = {}
        self._logger = get_logger(__name__)

    @property
    def settings(self) -> Settings:
        """Settings the factory was built from."""
        return self._settings

    def get_blob_storage(self) -> BlobStorageBase:
        """Get object store instance.

        Returns:
            Configured object store provider.
        """
        if "blob_storage" not in self._instances:
            blob_settings = self._settings.blob_storage
            if blob_settings.provider == "memory":
                self._instances["blob_storage"] = InMemoryBlobStorage()
            else:
                self._instances["blob_storage"] = MinioBlobStorage(
                    endpoint=blob_settings.endpoint,
                    access_key=blob_settings.access_key,
                    secret_key=blob_settings.secret_key,
                    secure=blob_settings.use_ssl,
                    region=blob_settings.region,
                )
        return cast("BlobStorageBase", self._instances["blob_storage"])

    def get_vector_db(self) -> VectorDBBase:
        """Get vector index instance.

        Returns:
            Configured vector index provider.
        """
        if "vector_db" not in self._instances:
            vector_settings = self._settings.vector_db
            if vector_settings.provider == "memory":
                self._instances["vector_db"] = InMemoryVectorDB()
            else:
                self._instances["vector_db"] = QdrantVectorDB(
                    host=vector_settings.host,
                    port=vector_settings.port,
                    grpc_port=vector_settings.grpc_port,
                    api_key=vector_settings.api_key,
                    url=vector_settings.url,
                    https=vector_settings.use_ssl,
                    prefer_grpc=vector_settings.prefer_grpc,
                )
        return cast("VectorDBBase", self._instances["vector_db"])

    def get_document_db(self) -> DocumentDBBase:
        """Get state store instance.

        Returns:
            Configured state store provider.
        """
        if "document_db" not in self._instances:
            doc_settings = self._settings.document_db
            if doc_settings.provider == "memory":
                self._instances["document_db"] = InMemoryDocumentDB()
            else:
                if doc_settings.username and doc_settings.password:
                    connection_string = (
                        f"mongodb://{doc_settings.username}:{doc_settings.password}"
                        f"@{doc_settings.host}:{doc_settings.port}"
                        f"/?authSource={doc_settings.auth_source}"
                    )
                else:
                    connection_string = (
                        f"mongodb://{doc_settings.host}:{doc_settings.port}"
                    )
                self._instances["document_db"] = MongoDBDocumentDB(
                    connection_string=connection_string,
                    database_name=doc_settings.database,
                )
        return cast("DocumentDBBase", self._instances["document_db"])

    def get_queue_publisher(self) -> QueuePublisherBase:
        """Get encoding queue publisher.

        Returns:
            Configured queue publisher.
        """
        if "queue" not in self._instances:
            queue_settings = self._settings.queue
            if queue_settings.provider == "memory":
                self._instances["queue"] = InMemoryQueuePublisher(
                    stream=queue_settings.stream
                )
            else:
                self._instances["queue"] = NatsJetStreamPublisher(
                    servers=queue_settings.servers,
                    stream=queue_settings.stream,
                    subjects=[queue_settings.subject],
                    publish_timeout_seconds=queue_settings.publish_timeout_seconds,
                )
        return cast("QueuePublisherBase", self._instances["queue"])

    def get_transcription_service(self) -> TranscriptionServiceBase | None:
        """Get transcription service instance.

        Returns:
            Configured transcription service, or None when disabled.
        """
        trans_settings = self._settings.transcription
        if not trans_settings.enabled:
            return None
        if "transcription" not in self._instances:
            if trans_settings.provider == "memory":
                self._instances["transcription"] = StaticTranscriptionService()
            else:
                self._instances["transcription"] = OpenAIAudioTranscription(
                    api_key=trans_settings.api_key,
                    model=trans_settings.model,
                    temperature=trans_settings.temperature,
                    base_url=trans_settings.base_url,
                    timeout_seconds=trans_settings.timeout_seconds,
                )
        return cast("TranscriptionServiceBase", self._instances["transcription"])

    def get_embedding_service(self) -> EmbeddingServiceBase:
        """Get text embedding service instance.

        Returns:
            Configured text embedding service.
        """
        if "embedding" not in self._instances:
            embed_settings = self._settings.embeddings
            if embed_settings.provider == "memory":
                self._instances["embedding"] = HashEmbeddingService(
                    dimensions=embed_settings.dimensions,
                    batch_size=embed_settings.batch_size,
                )
            else:
                self._instances["embedding"] = OpenAIEmbeddingService(
                    api_key=embed_settings.api_key,
                    model=embed_settings.model,
                    dimensions=embed_settings.dimensions,
                    batch_size=embed_settings.batch_size,
                    base_url=embed_settings.base_url,
                )
        return cast("EmbeddingServiceBase", self._instances["embedding"])

    async def close_all(self) -> None:
        """Close all service connections."""
        for name, instance in self._instances.items():
            close = getattr(instance, "close", None)
            if close is None:
                continue
            try:
                result = close()
                if hasattr(result, "__await__"):
                    await result
            except Exception:
                self._logger.warning(
                    "Failed to close service",
                    extra={"service": name},
                    exc_info=True,
                )

        self._instances.clear()


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
