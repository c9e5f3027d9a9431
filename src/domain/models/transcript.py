"""Transcript document persisted to the object store."""

from pydantic import Field

from src.domain.models.base import CamelModel

TRANSCRIPT_VERSION = "1.0"


class TranscriptSegment(CamelModel):
    id: int = Field(ge=0)
    start: float = Field(ge=0)
    end: float = Field(ge=0)
    text: str
    confidence: float = Field(default=0.9, ge=0.0, le=1.0)


class TranscriptMetadata(CamelModel):
    model: str
    processed_at: str
    audio_path: str
    audio_size_bytes: int = Field(ge=0)
    processing_time_ms: int = Field(ge=0)


class Transcript(CamelModel):
    """Timed transcript of one media's audio track."""

    version: str = TRANSCRIPT_VERSION
    video_id: str
    language: str = Field(description="Requested language")
    detected_language: str = Field(description="Language reported by the model")
    duration: float = Field(default=0.0, ge=0)
    text: str = ""
    segments: list[TranscriptSegment] = Field(default_factory=list)
    metadata: TranscriptMetadata | None = None

    def to_json(self) -> str:
        """Serialize with camelCase keys."""
        return self.model_dump_json(by_alias=True, exclude_none=True)
