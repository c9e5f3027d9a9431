"""Transcript chunk domain model."""

from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, Field


class ChunkMetadata(BaseModel):
    """Provenance of a chunk within its transcript."""

    segment_ids: list[int] = Field(
        default_factory=list,
        description="Source segment ids, ordered and deduplicated",
    )
    avg_confidence: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Mean confidence of the source segments",
    )
    language: str = Field(default="ar", description="Transcript language")


class TranscriptChunk(BaseModel):
    """A token-budgeted span of transcript text.

    Chunks of one media are written and deleted as a complete set. The
    chunk id doubles as the vector id, so it must stay a UUID string.
    """

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Unique chunk identifier",
    )
    media_id: str = Field(description="Parent media")
    module_id: str | None = Field(
        default=None,
        description="Owning module, copied from the media for filtering",
    )
    chunk_index: int = Field(ge=0, description="Position within the media")
    content: str = Field(description="Chunk text")
    token_count: int = Field(ge=0, description="Estimated tokens")
    start_time: float = Field(ge=0, description="Seconds from media start")
    end_time: float = Field(ge=0, description="Seconds from media start")
    metadata: ChunkMetadata = Field(default_factory=ChunkMetadata)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def duration_seconds(self) -> float:
        """Calculate chunk duration."""
        return self.end_time - self.start_time

    def format_time_range(self) -> str:
        """Format time range as MM:SS - MM:SS for display."""

        def fmt(seconds: float) -> str:
            minutes = int(seconds // 60)
            secs = int(seconds % 60)
            return f"{minutes:02d}:{secs:02d}"

        return f"{fmt(self.start_time)} - {fmt(self.end_time)}"
