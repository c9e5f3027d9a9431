"""DTOs for upload, dispatch and webhook operations."""

from pathlib import PurePosixPath
from typing import Any

from pydantic import BaseModel, Field, field_validator

from src.domain.models.dispatch import check_relative_path
from src.domain.models.encoding import VariantStatus, VideoQuality


class EncodingOptions(BaseModel):
    """Caller choices for an encoding dispatch."""

    qualities: list[VideoQuality] | None = Field(
        default=None,
        description="Restrict encoding to these tiers (None means all eligible)",
    )
    use_ai: bool = Field(
        default=True,
        description="Extract STT audio so the media gets transcribed and indexed",
    )


class CreateUploadRequest(BaseModel):
    """Request to start a media upload."""

    user_id: str = Field(min_length=1)
    title: str = Field(min_length=1, max_length=500)
    filename: str = Field(min_length=1, max_length=255)
    mime_type: str = Field(default="video/mp4")
    file_size: int | None = Field(default=None, ge=0)
    description: str = Field(default="")
    module_id: str | None = None
    lesson_id: str | None = None
    source_width: int | None = Field(default=None, gt=0)
    source_height: int | None = Field(default=None, gt=0)

    @field_validator("filename")
    @classmethod
    def _bare_filename(cls, value: str) -> str:
        """Keep only the last path component; it must be a safe object key."""
        name = PurePosixPath(value.replace("\\", "/")).name
        if not name:
            raise ValueError(f"filename has no name component: {value!r}")
        return check_relative_path(name)


class CreateUploadResponse(BaseModel):
    """Where the client should PUT the raw file."""

    media_id: str
    upload_url: str
    raw_path: str
    expires_in_seconds: int


class ConfirmUploadRequest(EncodingOptions):
    """Signals that the raw file is in the object store."""

    file_size: int | None = Field(default=None, ge=0)


class CreateEncodingJobsResult(BaseModel):
    """Outcome of a successful dispatch."""

    job_id: str
    thumbnail_job_id: str | None = None
    message_id: str
    qualities: list[VideoQuality]
    skipped_qualities: list[VideoQuality] = Field(default_factory=list)
    attempt_number: int = 1


class VariantProgress(BaseModel):
    quality: VideoQuality
    status: VariantStatus


class EncodingProgress(BaseModel):
    """Share of non-skipped variants that are ready."""

    media_id: str
    progress: int = Field(ge=0, le=100)
    ready: int = 0
    total: int = 0
    skipped: int = 0
    variants: list[VariantProgress] = Field(default_factory=list)


class WebhookAck(BaseModel):
    """Body returned to the encoding worker."""

    success: bool
    data: dict[str, Any] | None = None
    error: str | None = None


class MediaDeletionResult(BaseModel):
    """What a media deletion removed."""

    media_id: str
    deleted: bool
    objects_removed: int = Field(default=0, description="Object-store keys deleted")
    chunks_removed: int = Field(default=0, description="Indexed chunks deleted")
