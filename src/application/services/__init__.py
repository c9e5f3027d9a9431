"""Application services for media ingestion, transcription and search."""

from src.application.services.chunking import (
    ChunkStats,
    chunk_transcript,
    estimate_tokens,
    get_chunk_stats,
)
from src.application.services.index_store import DualIndexStore, IndexStoreBase
from src.application.services.indexing import TranscriptIndexer
from src.application.services.job_dispatcher import (
    EncodingJobDispatcher,
    determine_qualities,
    select_qualities,
)
from src.application.services.media_removal import MediaRemovalService
from src.application.services.media_store import MediaStateStore
from src.application.services.retrieval import ChunkRetriever
from src.application.services.transcription import TranscriptionService
from src.application.services.webhook import (
    WebhookProcessor,
    parse_webhook_payload,
    sign_webhook_payload,
    verify_webhook_signature,
)

__all__ = [
    "ChunkRetriever",
    "ChunkStats",
    "DualIndexStore",
    "EncodingJobDispatcher",
    "IndexStoreBase",
    "MediaRemovalService",
    "MediaStateStore",
    "TranscriptIndexer",
    "TranscriptionService",
    "WebhookProcessor",
    "chunk_transcript",
    "determine_qualities",
    "estimate_tokens",
    "get_chunk_stats",
    "parse_webhook_payload",
    "select_qualities",
    "sign_webhook_payload",
    "verify_webhook_signature",
]
