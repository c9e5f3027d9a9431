"""Semantic search over indexed transcript chunks."""

import time
from typing import Any

from src.application.dtos.search import ScoredChunk, SearchQuery, SearchResponse
from src.application.services.index_store import IndexStoreBase
from src.commons.infrastructure.vectordb.base import VectorDBBase
from src.commons.settings.models import VectorDBSettings
from src.commons.telemetry import get_logger, timed
from src.infrastructure.embeddings.base import EmbeddingServiceBase


class ChunkRetriever:
    """Finds the transcript chunks closest to a natural-language query."""

    def __init__(
        self,
        embedding_service: EmbeddingServiceBase,
        vector_db: VectorDBBase,
        index_store: IndexStoreBase,
        vector_settings: VectorDBSettings,
    ) -> None:
        self._embedder = embedding_service
        self._vector_db = vector_db
        self._index = index_store
        self._collection = vector_settings.collections.transcript_chunks
        self._logger = get_logger(__name__)

    @timed
    async def search_chunks(self, query: SearchQuery) -> SearchResponse:
        """Rank chunks by similarity to the query.

        The index is asked for twice ``top_k`` candidates, which are cut at
        ``min_score`` and then at ``top_k``. Matches whose rows have gone
        are dropped, so fewer than ``top_k`` results may come back.

        Args:
            query: Query text with optional media/module scope.

        Returns:
            Hydrated chunks in index order, highest score first.
        """
        started = time.monotonic()
        query_vector = (await self._embedder.embed_text(query.query)).vector

        filters: dict[str, Any] = {}
        if query.media_id:
            filters["media_id"] = query.media_id
        if query.module_id:
            filters["module_id"] = query.module_id

        matches = await self._vector_db.search(
            collection=self._collection,
            query_vector=query_vector,
            limit=query.top_k * 2,
            filters=filters or None,
        )
        kept = [m for m in matches if m.score >= query.min_score][: query.top_k]

        rows = await self._index.get_chunks([m.id for m in kept])
        chunks = [
            ScoredChunk.from_chunk(rows[m.id], m.score) for m in kept if m.id in rows
        ]
        if len(chunks) < len(kept):
            self._logger.warning(
                "Dropped stale index matches",
                extra={"stale": len(kept) - len(chunks)},
            )

        elapsed_ms = int((time.monotonic() - started) * 1000)
        self._logger.info(
            "Chunk search complete",
            extra={
                "candidates": len(matches),
                "results": len(chunks),
                "search_time_ms": elapsed_ms,
            },
        )
        return SearchResponse(
            chunks=chunks,
            query=query.query,
            total_found=len(chunks),
            search_time_ms=elapsed_ms,
        )

    async def get_chunk_by_id(self, chunk_id: str) -> ScoredChunk | None:
        """Load one chunk, scored 1.0."""
        rows = await self._index.get_chunks([chunk_id])
        chunk = rows.get(chunk_id)
        return ScoredChunk.from_chunk(chunk, 1.0) if chunk else None

    async def get_chunks_for_media(self, media_id: str) -> list[ScoredChunk]:
        """Load every chunk of a media in chunk order, scored 1.0."""
        chunks = await self._index.list_chunks(media_id)
        return [ScoredChunk.from_chunk(c, 1.0) for c in chunks]
