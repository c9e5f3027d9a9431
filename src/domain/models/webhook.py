"""Callback events posted by the encoding worker."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import Field, TypeAdapter

from src.domain.models.base import CamelModel
from src.domain.models.encoding import VideoQuality


class WebhookEvent(str, Enum):
    """Event names sent by the worker."""

    JOB_STARTED = "job.started"
    JOB_PROGRESS = "job.progress"
    QUALITY_COMPLETED = "quality.completed"
    JOB_COMPLETED = "job.completed"
    JOB_FAILED = "job.failed"
    THUMBNAIL_GENERATED = "thumbnail.generated"
    AUDIO_EXTRACTED = "audio.extracted"


class JobStartedData(CamelModel):
    source_width: int | None = Field(default=None, ge=0)
    source_height: int | None = Field(default=None, ge=0)
    duration: float | None = Field(default=None, ge=0)
    codec: str | None = None
    bitrate: int | None = Field(default=None, ge=0)
    fps: float | None = Field(default=None, ge=0)


class JobProgressData(CamelModel):
    progress: int = Field(ge=0, le=100)
    quality: VideoQuality | None = None
    message: str | None = None


class QualityCompletedData(CamelModel):
    quality: VideoQuality
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    bitrate: int | None = Field(default=None, ge=0)
    file_size: int | None = Field(default=None, ge=0)
    r2_path: str


class CompletedQuality(CamelModel):
    quality: VideoQuality
    r2_path: str
    file_size: int | None = Field(default=None, ge=0)


class JobCompletedData(CamelModel):
    duration: float | None = Field(default=None, ge=0)
    qualities: list[CompletedQuality] = Field(default_factory=list)


class JobFailedData(CamelModel):
    error_code: str
    error_message: str
    error_details: dict[str, Any] | None = None
    quality: VideoQuality | None = None


class ThumbnailGeneratedData(CamelModel):
    r2_path: str
    width: int | None = Field(default=None, gt=0)
    height: int | None = Field(default=None, gt=0)


class AudioExtractedData(CamelModel):
    output_path: str
    file_size_bytes: int | None = Field(default=None, ge=0)
    duration_seconds: float | None = Field(default=None, ge=0)
    format: str | None = None
    sample_rate: int | None = Field(default=None, gt=0)
    channels: int | None = Field(default=None, gt=0)
    bit_depth: int | None = Field(default=None, gt=0)


class _Envelope(CamelModel):
    job_id: str
    video_id: str
    timestamp: datetime | None = None


class JobStartedPayload(_Envelope):
    event: Literal["job.started"]
    data: JobStartedData


class JobProgressPayload(_Envelope):
    event: Literal["job.progress"]
    data: JobProgressData


class QualityCompletedPayload(_Envelope):
    event: Literal["quality.completed"]
    data: QualityCompletedData


class JobCompletedPayload(_Envelope):
    event: Literal["job.completed"]
    data: JobCompletedData


class JobFailedPayload(_Envelope):
    event: Literal["job.failed"]
    data: JobFailedData


class ThumbnailGeneratedPayload(_Envelope):
    event: Literal["thumbnail.generated"]
    data: ThumbnailGeneratedData


class AudioExtractedPayload(_Envelope):
    event: Literal["audio.extracted"]
    data: AudioExtractedData


WebhookPayload = Annotated[
    JobStartedPayload
    | JobProgressPayload
    | QualityCompletedPayload
    | JobCompletedPayload
    | JobFailedPayload
    | ThumbnailGeneratedPayload
    | AudioExtractedPayload,
    Field(discriminator="event"),
]

webhook_payload_adapter: TypeAdapter[WebhookPayload] = TypeAdapter(WebhookPayload)
