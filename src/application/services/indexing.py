"""Embedding transcript chunks and storing them for retrieval."""

import logging
import time

from src.application.dtos.transcription import IndexingResult, ReindexResult
from src.application.services.chunking import chunk_transcript, get_chunk_stats
from src.application.services.index_store import IndexStoreBase
from src.application.services.media_store import MediaStateStore
from src.commons.infrastructure.blob.base import BlobNotFoundError, BlobStorageBase
from src.commons.settings.models import BlobStorageSettings, RagSettings
from src.commons.telemetry import LogContext, get_logger, timed
from src.domain.exceptions import IndexingException, MediaNotFoundException
from src.domain.models.chunk import TranscriptChunk
from src.domain.models.media import MediaStatus
from src.domain.models.transcript import Transcript
from src.domain.value_objects.chunking_config import ChunkingConfig
from src.infrastructure.embeddings.base import EmbeddingServiceBase


class TranscriptIndexer:
    """Chunks a stored transcript, embeds it and writes the chunk set."""

    def __init__(
        self,
        state_store: MediaStateStore,
        blob_storage: BlobStorageBase,
        embedding_service: EmbeddingServiceBase,
        index_store: IndexStoreBase,
        blob_settings: BlobStorageSettings,
        rag_settings: RagSettings,
    ) -> None:
        """Initialize the indexer.

        Args:
            state_store: Media persistence.
            blob_storage: Object store holding transcripts.
            embedding_service: Text embedding model.
            index_store: Chunk and vector storage.
            blob_settings: Bucket names.
            rag_settings: Chunking budgets.
        """
        self._store = state_store
        self._blob = blob_storage
        self._embedder = embedding_service
        self._index = index_store
        self._bucket = blob_settings.buckets.media
        self._chunking = ChunkingConfig(
            target_tokens=rag_settings.chunk_target_tokens,
            min_tokens=rag_settings.chunk_min_tokens,
        )
        self._logger = get_logger(__name__)

    async def store_chunks_with_embeddings(
        self,
        chunks: list[TranscriptChunk],
    ) -> IndexingResult:
        """Embed chunk contents and write chunks with their vectors.

        All chunks must belong to the same media. On failure nothing from
        this call remains stored and the error propagates.
        """
        if not chunks:
            return IndexingResult(media_id="")

        started = time.monotonic()
        media_id = chunks[0].media_id
        embeddings = await self._embedder.embed_texts([c.content for c in chunks])
        stored = await self._index.write_all(
            chunks, [e.vector for e in embeddings]
        )

        return IndexingResult(
            media_id=media_id,
            chunks_created=len(chunks),
            embeddings_stored=stored,
            processing_time_ms=int((time.monotonic() - started) * 1000),
        )

    async def delete_media_chunks(self, media_id: str) -> int:
        """Remove a media's chunks and vectors."""
        return await self._index.delete_all(media_id)

    async def _load_transcript(self, media_id: str, path: str) -> Transcript:
        try:
            data = await self._blob.download(self._bucket, path)
        except BlobNotFoundError as e:
            raise IndexingException(media_id, f"Transcript not found at {path}") from e
        return Transcript.model_validate_json(data)

    @timed(level=logging.INFO)
    async def index_media_transcript(self, media_id: str) -> IndexingResult:
        """Rebuild a media's chunk set from its stored transcript.

        Raises:
            IndexingException: If the media or its transcript is missing.
        """
        media = await self._store.get_media(media_id)
        if media is None:
            raise IndexingException(media_id, "Media not found")
        if not media.transcript_path:
            raise IndexingException(media_id, "Media has no transcript")

        transcript = await self._load_transcript(media_id, media.transcript_path)

        removed = await self.delete_media_chunks(media_id)
        if removed:
            self._logger.info(
                "Previous chunks removed",
                extra={"media_id": media_id, "chunks": removed},
            )

        chunks = chunk_transcript(transcript, media_id, media.module_id, self._chunking)
        stats = get_chunk_stats(chunks)
        self._logger.info(
            "Transcript chunked",
            extra={
                "media_id": media_id,
                "total_chunks": stats.total_chunks,
                "total_tokens": stats.total_tokens,
                "avg_tokens_per_chunk": stats.avg_tokens_per_chunk,
                "avg_confidence": stats.avg_confidence,
                "total_duration_seconds": stats.total_duration_seconds,
            },
        )

        result = await self.store_chunks_with_embeddings(chunks)
        return result.model_copy(update={"media_id": media_id})

    async def _current_status(self, media_id: str) -> MediaStatus:
        media = await self._store.get_media(media_id)
        if media is None:
            raise MediaNotFoundException(media_id)
        return media.status

    async def retry_media_indexing(self, media_id: str) -> ReindexResult:
        """Re-run indexing for a media and settle its status.

        Raises:
            MediaNotFoundException: If the media does not exist.
        """
        with LogContext(media_id=media_id):
            media = await self._store.get_media(media_id)
            if media is None:
                raise MediaNotFoundException(media_id)
            if not media.transcript_path:
                return ReindexResult(
                    success=False,
                    media_id=media_id,
                    status=media.status,
                    error="Media has no transcript to index",
                )

            moved = await self._store.transition_media(
                media_id,
                MediaStatus.INDEXING,
                [MediaStatus.READY, MediaStatus.FAILED_INDEXING, MediaStatus.INDEXING],
            )
            if not moved:
                return ReindexResult(
                    success=False,
                    media_id=media_id,
                    status=media.status,
                    error=(
                        "Media cannot be re-indexed from status "
                        f"'{media.status.value}'"
                    ),
                )

            try:
                result = await self.index_media_transcript(media_id)
            except Exception as e:
                self._logger.exception("Re-indexing failed")
                failed = await self._store.transition_media(
                    media_id,
                    MediaStatus.FAILED_INDEXING,
                    [MediaStatus.INDEXING],
                    last_error=str(e),
                )
                return ReindexResult(
                    success=False,
                    media_id=media_id,
                    status=(
                        MediaStatus.FAILED_INDEXING
                        if failed
                        else await self._current_status(media_id)
                    ),
                    error=str(e),
                )

            settled = await self._store.settle_ai_stage(media_id)
            if settled is None:
                return ReindexResult(
                    success=False,
                    media_id=media_id,
                    status=await self._current_status(media_id),
                    result=result,
                    error="Media left the indexing stage while it was re-indexed",
                )
            return ReindexResult(
                success=True,
                media_id=media_id,
                status=settled,
                result=result,
            )
