"""FastAPI dependency injection for services and settings."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from src.application.services import background
from src.application.services.index_store import DualIndexStore
from src.application.services.indexing import TranscriptIndexer
from src.application.services.job_dispatcher import EncodingJobDispatcher
from src.application.services.media_removal import MediaRemovalService
from src.application.services.media_store import MediaStateStore
from src.application.services.retrieval import ChunkRetriever
from src.application.services.transcription import TranscriptionService
from src.application.services.webhook import WebhookProcessor
from src.commons.settings.loader import get_settings as _load_settings
from src.commons.settings.models import Settings
from src.commons.telemetry import get_logger
from src.infrastructure.factory import (
    InfrastructureFactory,
    get_factory,
    reset_factory,
)

logger = get_logger(__name__)


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
    """Get infrastructure factory with all providers."""
    return get_factory(settings)


# The builders below take the factory directly so the lifespan and the
# request dependencies share one wiring.


def build_state_store(factory: InfrastructureFactory) -> MediaStateStore:
    return MediaStateStore(
        document_db=factory.get_document_db(),
        doc_settings=factory.settings.document_db,
    )


def build_index_store(factory: InfrastructureFactory) -> DualIndexStore:
    settings = factory.settings
    return DualIndexStore(
        document_db=factory.get_document_db(),
        vector_db=factory.get_vector_db(),
        doc_settings=settings.document_db,
        vector_settings=settings.vector_db,
        rag_settings=settings.rag,
    )


def build_indexer(factory: InfrastructureFactory) -> TranscriptIndexer | None:
    """Build the indexer, or None when retrieval is disabled."""
    settings = factory.settings
    if not settings.rag.enabled:
        return None
    return TranscriptIndexer(
        state_store=build_state_store(factory),
        blob_storage=factory.get_blob_storage(),
        embedding_service=factory.get_embedding_service(),
        index_store=build_index_store(factory),
        blob_settings=settings.blob_storage,
        rag_settings=settings.rag,
    )


def build_transcription_service(
    factory: InfrastructureFactory,
) -> TranscriptionService | None:
    """Build the transcription service, or None when transcription is disabled."""
    transcriber = factory.get_transcription_service()
    if transcriber is None:
        return None
    settings = factory.settings
    return TranscriptionService(
        state_store=build_state_store(factory),
        blob_storage=factory.get_blob_storage(),
        transcriber=transcriber,
        blob_settings=settings.blob_storage,
        transcription_settings=settings.transcription,
        indexer=build_indexer(factory),
    )


def get_state_store(
    factory: Annotated[InfrastructureFactory, Depends(get_infrastructure_factory)],
) -> MediaStateStore:
    return build_state_store(factory)


def get_dispatcher(
    factory: Annotated[InfrastructureFactory, Depends(get_infrastructure_factory)],
) -> EncodingJobDispatcher:
    """Get the encoding job dispatcher."""
    settings = factory.settings
    return EncodingJobDispatcher(
        state_store=build_state_store(factory),
        queue=factory.get_queue_publisher(),
        blob_storage=factory.get_blob_storage(),
        encoding_settings=settings.encoding,
        queue_settings=settings.queue,
        blob_settings=settings.blob_storage,
    )


def get_media_removal(
    factory: Annotated[InfrastructureFactory, Depends(get_infrastructure_factory)],
) -> MediaRemovalService:
    """Get the media removal service; chunks are removed when retrieval is on."""
    settings = factory.settings
    return MediaRemovalService(
        state_store=build_state_store(factory),
        blob_storage=factory.get_blob_storage(),
        blob_settings=settings.blob_storage,
        index_store=build_index_store(factory) if settings.rag.enabled else None,
    )


def get_transcription_service(
    factory: Annotated[InfrastructureFactory, Depends(get_infrastructure_factory)],
) -> TranscriptionService | None:
    return build_transcription_service(factory)


def get_indexer(
    factory: Annotated[InfrastructureFactory, Depends(get_infrastructure_factory)],
) -> TranscriptIndexer | None:
    return build_indexer(factory)


def get_webhook_processor(
    factory: Annotated[InfrastructureFactory, Depends(get_infrastructure_factory)],
) -> WebhookProcessor:
    """Get the webhook processor wired to background transcription."""
    transcription = build_transcription_service(factory)
    return WebhookProcessor(
        state_store=build_state_store(factory),
        transcription_trigger=(
            transcription.process_media_transcription if transcription else None
        ),
    )


def get_retriever(
    factory: Annotated[InfrastructureFactory, Depends(get_infrastructure_factory)],
) -> ChunkRetriever:
    """Get the chunk retriever."""
    return ChunkRetriever(
        embedding_service=factory.get_embedding_service(),
        vector_db=factory.get_vector_db(),
        index_store=build_index_store(factory),
        vector_settings=factory.settings.vector_db,
    )


# Type aliases for cleaner route signatures
SettingsDep = Annotated[Settings, Depends(get_settings)]
FactoryDep = Annotated[InfrastructureFactory, Depends(get_infrastructure_factory)]
StateStoreDep = Annotated[MediaStateStore, Depends(get_state_store)]
DispatcherDep = Annotated[EncodingJobDispatcher, Depends(get_dispatcher)]
MediaRemovalDep = Annotated[MediaRemovalService, Depends(get_media_removal)]
TranscriptionDep = Annotated[
    TranscriptionService | None, Depends(get_transcription_service)
]
IndexerDep = Annotated[TranscriptIndexer | None, Depends(get_indexer)]
WebhookProcessorDep = Annotated[WebhookProcessor, Depends(get_webhook_processor)]
RetrieverDep = Annotated[ChunkRetriever, Depends(get_retriever)]


async def init_services(settings: Settings) -> None:
    """Initialize infrastructure and storage layout on startup.

    Args:
        settings: Application settings.
    """
    factory = get_factory(settings)

    blob = factory.get_blob_storage()
    bucket = settings.blob_storage.buckets.media
    if await blob.create_bucket(bucket):
        logger.info("Bucket created", extra={"bucket": bucket})

    await build_state_store(factory).ensure_indexes()

    if settings.rag.enabled:
        created = await build_index_store(factory).ensure_collection(
            settings.embeddings.dimensions
        )
        if created:
            logger.info(
                "Vector collection created",
                extra={"collection": settings.vector_db.collections.transcript_chunks},
            )


async def shutdown_services() -> None:
    """Wait for background work, then close infrastructure connections."""
    try:
        await background.drain(timeout=30)
        factory = get_factory()
        await factory.close_all()
    except ValueError:
        pass  # Factory not initialized
    finally:
        reset_factory()
        get_settings.cache_clear()
