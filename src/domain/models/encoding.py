"""Encoding variants, jobs and the fixed quality ladder."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any, Self
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class VideoQuality(str, Enum):
    """Target rendition heights."""

    Q1080P = "1080p"
    Q720P = "720p"
    Q480P = "480p"
    Q360P = "360p"
    Q240P = "240p"


class QualityConfig(BaseModel):
    """Dimensions and bitrates for one rendition."""

    model_config = ConfigDict(frozen=True)

    quality: VideoQuality
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    bitrate: int = Field(gt=0, description="Video bitrate in kbps")
    audio_bitrate: int = Field(gt=0, description="Audio bitrate in kbps")


def _tier(
    quality: VideoQuality, width: int, height: int, bitrate: int, audio: int
) -> QualityConfig:
    return QualityConfig(
        quality=quality,
        width=width,
        height=height,
        bitrate=bitrate,
        audio_bitrate=audio,
    )


QUALITY_LADDER: tuple[QualityConfig, ...] = (
    _tier(VideoQuality.Q1080P, 1920, 1080, 5000, 192),
    _tier(VideoQuality.Q720P, 1280, 720, 2500, 128),
    _tier(VideoQuality.Q480P, 854, 480, 1000, 96),
    _tier(VideoQuality.Q360P, 640, 360, 600, 64),
    _tier(VideoQuality.Q240P, 426, 240, 300, 48),
)
"""Highest first. The last entry is the floor that is always encoded."""


def quality_config(quality: VideoQuality) -> QualityConfig:
    """Look up the ladder entry for a quality."""
    return next(c for c in QUALITY_LADDER if c.quality == quality)


def ladder_index(quality: VideoQuality | str) -> int:
    """Position of a quality on the ladder, 0 being the highest."""
    value = VideoQuality(quality)
    return next(i for i, c in enumerate(QUALITY_LADDER) if c.quality == value)


class VariantStatus(str, Enum):
    """Status of one encoded rendition."""

    PENDING = "pending"
    ENCODING = "encoding"
    READY = "ready"
    ERROR = "error"
    SKIPPED = "skipped"  # Above source resolution or deselected


class MediaVariant(BaseModel):
    """One row per ladder tier, created when jobs are created."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    media_id: str = Field(description="Parent media")
    quality: VideoQuality
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    bitrate: int = Field(gt=0)
    audio_bitrate: int = Field(gt=0)
    path: str | None = Field(default=None, description="Encoded file path")
    file_size: int | None = Field(default=None, ge=0)
    status: VariantStatus = Field(default=VariantStatus.PENDING)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = Field(default=None)

    @classmethod
    def for_tier(
        cls,
        media_id: str,
        config: QualityConfig,
        status: VariantStatus,
    ) -> Self:
        """Build the variant row for a ladder tier."""
        return cls(
            media_id=media_id,
            quality=config.quality,
            width=config.width,
            height=config.height,
            bitrate=config.bitrate,
            audio_bitrate=config.audio_bitrate,
            status=status,
        )


class JobType(str, Enum):
    """What a job asks the worker to produce."""

    ENCODE = "encode"
    THUMBNAIL = "thumbnail"


class JobStatus(str, Enum):
    """Status of a dispatch to the encoding worker."""

    PENDING = "pending"
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_JOB_STATUSES = frozenset(
    {JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED}
)


class EncodingJob(BaseModel):
    """A dispatch to the encoding worker.

    Retries reuse the same row: ``attempt_number`` grows and the error
    fields are cleared.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    media_id: str = Field(description="Parent media")
    external_job_id: str | None = Field(
        default=None,
        description="Queue message id of the latest publish",
    )
    job_type: JobType = Field(default=JobType.ENCODE)
    status: JobStatus = Field(default=JobStatus.PENDING)
    progress: int = Field(default=0, ge=0, le=100)
    progress_message: str | None = Field(default=None)
    extract_audio: bool = Field(
        default=False,
        description="Whether the dispatch requested STT audio extraction",
    )
    attempt_number: int = Field(default=1, ge=1)
    max_attempts: int = Field(default=3, ge=1)
    error_code: str | None = Field(default=None)
    error_message: str | None = Field(default=None)
    error_details: dict[str, Any] | None = Field(default=None)
    queued_at: datetime | None = Field(default=None)
    started_at: datetime | None = Field(default=None)
    completed_at: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def can_retry(self) -> bool:
        """Check if the job failed with attempts left."""
        return (
            self.status == JobStatus.FAILED
            and self.attempt_number < self.max_attempts
        )

    @property
    def is_terminal(self) -> bool:
        """Check if the job reached completed, failed or cancelled."""
        return self.status in TERMINAL_JOB_STATUSES
