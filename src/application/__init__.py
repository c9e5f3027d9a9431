"""Application layer - use cases and orchestration.

This layer contains:
- Services: Dispatch, webhook handling, transcription, indexing, search
- DTOs: Data transfer objects for API boundaries
"""

from src.application.dtos import (
    CreateEncodingJobsResult,
    EncodingProgress,
    IndexingResult,
    SearchQuery,
    SearchResponse,
    TranscriptionResult,
)
from src.application.services import (
    ChunkRetriever,
    EncodingJobDispatcher,
    MediaStateStore,
    TranscriptIndexer,
    TranscriptionService,
    WebhookProcessor,
)

__all__ = [
    # DTOs
    "CreateEncodingJobsResult",
    "EncodingProgress",
    "IndexingResult",
    "SearchQuery",
    "SearchResponse",
    "TranscriptionResult",
    # Services
    "ChunkRetriever",
    "EncodingJobDispatcher",
    "MediaStateStore",
    "TranscriptIndexer",
    "TranscriptionService",
    "WebhookProcessor",
]
