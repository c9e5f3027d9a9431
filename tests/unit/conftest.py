"""Shared fixtures: the pipeline wired to in-memory adapters."""

import pytest

from src.application.services.index_store import DualIndexStore
from src.application.services.indexing import TranscriptIndexer
from src.application.services.job_dispatcher import EncodingJobDispatcher
from src.application.services.media_removal import MediaRemovalService
from src.application.services.media_store import MediaStateStore
from src.application.services.retrieval import ChunkRetriever
from src.application.services.transcription import TranscriptionService
from src.application.services.webhook import WebhookProcessor
from src.commons.infrastructure.blob import InMemoryBlobStorage
from src.commons.infrastructure.documentdb import InMemoryDocumentDB
from src.commons.infrastructure.queue import InMemoryQueuePublisher
from src.commons.infrastructure.vectordb import InMemoryVectorDB
from src.commons.settings.models import Settings
from src.infrastructure.embeddings import HashEmbeddingService
from src.infrastructure.transcription import StaticTranscriptionService

WEBHOOK_SECRET = "s" * 32
PUBLIC_ADDRESS = "93.184.216.34"


@pytest.fixture
def settings():
    """Settings selecting in-memory adapters and a public webhook URL."""
    settings = Settings()
    settings.blob_storage.provider = "memory"
    settings.vector_db.provider = "memory"
    settings.document_db.provider = "memory"
    settings.queue.provider = "memory"
    settings.transcription.provider = "memory"
    settings.embeddings.provider = "memory"
    settings.embeddings.dimensions = 64
    settings.encoding.webhook_url = "https://hooks.example.com/encoding/webhook"
    settings.encoding.webhook_secret = WEBHOOK_SECRET
    return settings


@pytest.fixture
def doc_db():
    return InMemoryDocumentDB()


@pytest.fixture
def blob_storage():
    return InMemoryBlobStorage()


@pytest.fixture
def vector_db():
    return InMemoryVectorDB()


@pytest.fixture
def queue():
    return InMemoryQueuePublisher(stream="ENCODING")


@pytest.fixture
def embedder(settings):
    return HashEmbeddingService(dimensions=settings.embeddings.dimensions)


@pytest.fixture
def transcriber():
    return StaticTranscriptionService()


@pytest.fixture
def state_store(doc_db, settings):
    return MediaStateStore(doc_db, settings.document_db)


@pytest.fixture
def resolver():
    """Resolver that maps every host to a public address."""

    async def resolve(hostname: str) -> list[str]:
        return [PUBLIC_ADDRESS]

    return resolve


@pytest.fixture
def dispatcher(state_store, queue, blob_storage, settings, resolver):
    return EncodingJobDispatcher(
        state_store,
        queue,
        blob_storage,
        settings.encoding,
        settings.queue,
        settings.blob_storage,
        resolver=resolver,
    )


@pytest.fixture
async def index_store(doc_db, vector_db, settings):
    store = DualIndexStore(
        doc_db,
        vector_db,
        settings.document_db,
        settings.vector_db,
        settings.rag,
    )
    await store.ensure_collection(settings.embeddings.dimensions)
    return store


@pytest.fixture
def indexer(state_store, blob_storage, embedder, index_store, settings):
    return TranscriptIndexer(
        state_store,
        blob_storage,
        embedder,
        index_store,
        settings.blob_storage,
        settings.rag,
    )


@pytest.fixture
def transcription_service(state_store, blob_storage, transcriber, indexer, settings):
    return TranscriptionService(
        state_store,
        blob_storage,
        transcriber,
        settings.blob_storage,
        settings.transcription,
        indexer=indexer,
    )


@pytest.fixture
def webhook_processor(state_store, transcription_service):
    return WebhookProcessor(
        state_store,
        transcription_trigger=transcription_service.process_media_transcription,
    )


@pytest.fixture
def retriever(embedder, vector_db, index_store, settings):
    return ChunkRetriever(embedder, vector_db, index_store, settings.vector_db)


@pytest.fixture
def media_removal(state_store, blob_storage, index_store, settings):
    return MediaRemovalService(
        state_store,
        blob_storage,
        settings.blob_storage,
        index_store=index_store,
    )
