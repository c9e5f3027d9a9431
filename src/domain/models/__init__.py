"""Domain models."""

from src.domain.models.base import CamelModel
from src.domain.models.chunk import ChunkMetadata, TranscriptChunk
from src.domain.models.dispatch import (
    AudioRequest,
    CallbackDescriptor,
    DispatchMetadata,
    EncodingJobMessage,
    OutputLocation,
    QualitySpec,
    SourceLocation,
    ThumbnailRequest,
)
from src.domain.models.encoding import (
    QUALITY_LADDER,
    EncodingJob,
    JobStatus,
    JobType,
    MediaVariant,
    QualityConfig,
    VariantStatus,
    VideoQuality,
)
from src.domain.models.media import Media, MediaStatus, SourceMetadata
from src.domain.models.transcript import (
    Transcript,
    TranscriptMetadata,
    TranscriptSegment,
)
from src.domain.models.webhook import (
    AudioExtractedPayload,
    JobCompletedPayload,
    JobFailedPayload,
    JobProgressPayload,
    JobStartedPayload,
    QualityCompletedPayload,
    ThumbnailGeneratedPayload,
    WebhookEvent,
    WebhookPayload,
)

__all__ = [
    "CamelModel",
    # Media
    "Media",
    "MediaStatus",
    "SourceMetadata",
    # Encoding
    "QUALITY_LADDER",
    "QualityConfig",
    "VideoQuality",
    "MediaVariant",
    "VariantStatus",
    "EncodingJob",
    "JobStatus",
    "JobType",
    # Dispatch message
    "EncodingJobMessage",
    "SourceLocation",
    "OutputLocation",
    "QualitySpec",
    "ThumbnailRequest",
    "AudioRequest",
    "CallbackDescriptor",
    "DispatchMetadata",
    # Webhooks
    "WebhookEvent",
    "WebhookPayload",
    "JobStartedPayload",
    "JobProgressPayload",
    "QualityCompletedPayload",
    "JobCompletedPayload",
    "JobFailedPayload",
    "ThumbnailGeneratedPayload",
    "AudioExtractedPayload",
    # Transcript
    "Transcript",
    "TranscriptSegment",
    "TranscriptMetadata",
    # Chunks
    "TranscriptChunk",
    "ChunkMetadata",
]
