"""DTOs for transcript search."""

from datetime import datetime

from pydantic import Field

from src.domain.models.base import CamelModel
from src.domain.models.chunk import ChunkMetadata, TranscriptChunk


class SearchQuery(CamelModel):
    """Semantic search over transcript chunks."""

    query: str = Field(min_length=1, max_length=2000)
    module_id: str | None = None
    media_id: str | None = Field(default=None, alias="videoId")
    top_k: int = Field(default=5, ge=1, le=100)
    min_score: float = Field(default=0.5, ge=0.0, le=1.0)


class ScoredChunk(CamelModel):
    """A hydrated chunk with its similarity score."""

    id: str
    media_id: str = Field(alias="videoId")
    module_id: str | None = None
    chunk_index: int
    content: str
    token_count: int
    start_time: float
    end_time: float
    metadata: ChunkMetadata
    created_at: datetime
    score: float

    @classmethod
    def from_chunk(cls, chunk: TranscriptChunk, score: float) -> "ScoredChunk":
        """Attach a score to a stored chunk."""
        return cls(**chunk.model_dump(), score=score)


class SearchResponse(CamelModel):
    chunks: list[ScoredChunk] = Field(default_factory=list)
    query: str
    total_found: int = 0
    search_time_ms: int = 0
