"""Media aggregate and its lifecycle status."""

from datetime import UTC, datetime
from enum import Enum
from typing import Self
from uuid import uuid4

from pydantic import BaseModel, Field


class MediaStatus(str, Enum):
    """Lifecycle status of an uploaded media file."""

    PENDING = "pending"  # Record created, nothing uploaded yet
    UPLOADING = "uploading"  # Client is uploading the raw file
    ENCODING = "encoding"  # Encoding worker owns the file
    TRANSCRIBING = "transcribing"  # Audio sent to the transcription model
    INDEXING = "indexing"  # Chunks and vectors being written
    READY = "ready"  # Playable (and indexed when AI is enabled)
    ERROR = "error"  # Encoding failed
    FAILED_TRANSCRIPTION = "failed_transcription"
    FAILED_INDEXING = "failed_indexing"


class SourceMetadata(BaseModel):
    """Technical metadata reported by the encoding worker."""

    codec: str | None = Field(default=None, description="Source video codec")
    bitrate: int | None = Field(default=None, ge=0, description="Source bitrate")
    fps: float | None = Field(default=None, ge=0, description="Frames per second")


class Media(BaseModel):
    """Aggregate root for an uploaded media file.

    Variants, encoding jobs and transcript chunks all reference a media
    through ``media_id``.
    """

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Internal UUID for this media record",
    )
    user_id: str = Field(description="Owning user")
    module_id: str | None = Field(
        default=None,
        description="Owning module, denormalized onto chunks for filtering",
    )
    lesson_id: str | None = Field(default=None, description="Owning lesson")
    title: str = Field(description="Display title")
    description: str = Field(default="", description="Free-form description")
    filename: str = Field(description="Original upload filename")
    mime_type: str = Field(default="video/mp4", description="Upload MIME type")
    file_size: int | None = Field(default=None, ge=0, description="Raw size in bytes")

    raw_path: str = Field(description="Object-store path of the raw upload")
    thumbnail_path: str | None = Field(default=None, description="Thumbnail path")
    audio_path: str | None = Field(default=None, description="Extracted STT audio")
    transcript_path: str | None = Field(default=None, description="Transcript JSON")

    source_width: int | None = Field(default=None, ge=0)
    source_height: int | None = Field(default=None, ge=0)
    duration: int | None = Field(default=None, ge=0, description="Seconds")
    source_metadata: SourceMetadata | None = Field(default=None)

    status: MediaStatus = Field(
        default=MediaStatus.PENDING,
        description="Current lifecycle status",
    )
    last_error: str | None = Field(
        default=None,
        description="Error details from the most recent failure",
    )
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_ready(self) -> bool:
        """Check if the media is playable."""
        return self.status == MediaStatus.READY

    @property
    def is_failed(self) -> bool:
        """Check if any stage has failed."""
        return self.status in {
            MediaStatus.ERROR,
            MediaStatus.FAILED_TRANSCRIPTION,
            MediaStatus.FAILED_INDEXING,
        }

    @property
    def in_ai_stage(self) -> bool:
        """Check if transcription or indexing is running."""
        return self.status in {MediaStatus.TRANSCRIBING, MediaStatus.INDEXING}

    def transition_to(
        self,
        new_status: MediaStatus,
        error_message: str | None = None,
    ) -> Self:
        """Create a new instance with updated status.

        Args:
            new_status: The new status to transition to.
            error_message: Failure description, kept only for failed states.

        Returns:
            A new Media instance with updated status and timestamp.
        """
        failed = new_status in {
            MediaStatus.ERROR,
            MediaStatus.FAILED_TRANSCRIPTION,
            MediaStatus.FAILED_INDEXING,
        }
        return self.model_copy(
            update={
                "status": new_status,
                "updated_at": datetime.now(UTC),
                "last_error": error_message if failed else None,
            }
        )
