"""Data Transfer Objects for application layer."""

from src.application.dtos.encoding import (
    ConfirmUploadRequest,
    CreateEncodingJobsResult,
    CreateUploadRequest,
    CreateUploadResponse,
    EncodingOptions,
    EncodingProgress,
    MediaDeletionResult,
    VariantProgress,
    WebhookAck,
)
from src.application.dtos.search import ScoredChunk, SearchQuery, SearchResponse
from src.application.dtos.transcription import (
    IndexingResult,
    ReindexResult,
    TranscriptionResult,
    TranscriptionStatus,
)

__all__ = [
    # Encoding
    "EncodingOptions",
    "CreateUploadRequest",
    "CreateUploadResponse",
    "ConfirmUploadRequest",
    "CreateEncodingJobsResult",
    "EncodingProgress",
    "MediaDeletionResult",
    "VariantProgress",
    "WebhookAck",
    # Transcription
    "TranscriptionResult",
    "TranscriptionStatus",
    "IndexingResult",
    "ReindexResult",
    # Search
    "SearchQuery",
    "SearchResponse",
    "ScoredChunk",
]
