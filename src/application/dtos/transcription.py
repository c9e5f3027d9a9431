"""DTOs for transcription and indexing operations."""

from pydantic import BaseModel, Field

from src.domain.models.media import MediaStatus


class TranscriptionResult(BaseModel):
    """Outcome of one transcription attempt."""

    success: bool
    media_id: str
    transcript_path: str | None = None
    error: str | None = None
    next_status: MediaStatus = Field(
        description="Status the media should move to after this step",
    )


class TranscriptionStatus(BaseModel):
    media_id: str
    status: MediaStatus
    transcript_path: str | None = None
    error: str | None = None


class IndexingResult(BaseModel):
    """Counts from one indexing pass."""

    media_id: str
    chunks_created: int = 0
    embeddings_stored: int = 0
    processing_time_ms: int = 0


class ReindexResult(BaseModel):
    """Outcome of an operator-triggered re-index."""

    success: bool
    media_id: str
    status: MediaStatus
    result: IndexingResult | None = None
    error: str | None = None
