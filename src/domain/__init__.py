"""Domain layer - business models and logic."""

from src.domain.exceptions import (
    ChunkNotFoundException,
    DispatchValidationException,
    DomainException,
    EmbeddingException,
    EncodingJobNotFoundException,
    IndexingException,
    InvalidWebhookPayloadException,
    JobRetryException,
    MediaNotFoundException,
    MediaStateException,
    QueuePublishException,
    TranscriptionException,
    WebhookSignatureException,
)
from src.domain.models import (
    EncodingJob,
    JobStatus,
    JobType,
    Media,
    MediaStatus,
    MediaVariant,
    Transcript,
    TranscriptChunk,
    VariantStatus,
    VideoQuality,
)
from src.domain.value_objects import ChunkingConfig, MediaPaths

__all__ = [
    # Exceptions
    "DomainException",
    "MediaNotFoundException",
    "EncodingJobNotFoundException",
    "ChunkNotFoundException",
    "MediaStateException",
    "JobRetryException",
    "DispatchValidationException",
    "QueuePublishException",
    "WebhookSignatureException",
    "InvalidWebhookPayloadException",
    "TranscriptionException",
    "IndexingException",
    "EmbeddingException",
    # Models
    "Media",
    "MediaStatus",
    "MediaVariant",
    "VariantStatus",
    "VideoQuality",
    "EncodingJob",
    "JobStatus",
    "JobType",
    "Transcript",
    "TranscriptChunk",
    # Value Objects
    "ChunkingConfig",
    "MediaPaths",
]
