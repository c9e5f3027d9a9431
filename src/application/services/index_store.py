"""Chunk rows and chunk vectors kept as one unit per media."""

import asyncio
from abc import ABC, abstractmethod
from typing import Any

from src.commons.infrastructure.documentdb.base import DocumentDBBase
from src.commons.infrastructure.vectordb.base import VectorDBBase, VectorPoint
from src.commons.settings.models import (
    DocumentDBSettings,
    RagSettings,
    VectorDBSettings,
)
from src.commons.telemetry import get_logger
from src.domain.models.chunk import TranscriptChunk

_PAGE_SIZE = 500

PAYLOAD_INDEXES = ["media_id", "module_id"]


def _batches(items: list[Any], size: int) -> list[list[Any]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


class IndexStoreBase(ABC):
    """All-or-nothing storage for a media's chunk set.

    ``write_all`` either stores every chunk with its vector or leaves no
    trace of the attempt. ``delete_all`` removes a media's chunks from
    every backing store.
    """

    @abstractmethod
    async def write_all(
        self,
        chunks: list[TranscriptChunk],
        vectors: list[list[float]],
    ) -> int:
        """Store chunks and their vectors.

        Args:
            chunks: Chunks of a single media.
            vectors: One vector per chunk, in the same order.

        Returns:
            Number of vectors stored.
        """

    @abstractmethod
    async def delete_all(self, media_id: str) -> int:
        """Remove a media's chunks and vectors.

        Returns:
            Number of chunks removed.
        """

    @abstractmethod
    async def get_chunks(self, chunk_ids: list[str]) -> dict[str, TranscriptChunk]:
        """Load chunks by id. Missing ids are absent from the result."""

    @abstractmethod
    async def list_chunks(self, media_id: str) -> list[TranscriptChunk]:
        """Load every chunk of a media in chunk order."""


class DualIndexStore(IndexStoreBase):
    """Chunk rows in the document store and vectors in the vector index.

    A failed ``write_all`` is compensated by deleting the media's rows and
    every vector id upserted during the attempt, concurrently, before the
    original error is re-raised.
    """

    def __init__(
        self,
        document_db: DocumentDBBase,
        vector_db: VectorDBBase,
        doc_settings: DocumentDBSettings,
        vector_settings: VectorDBSettings,
        rag_settings: RagSettings,
    ) -> None:
        """Initialize the store.

        Args:
            document_db: Row storage.
            vector_db: Vector index.
            doc_settings: Document collection names.
            vector_settings: Vector collection names.
            rag_settings: Write batch sizes.
        """
        self._doc_db = document_db
        self._vector_db = vector_db
        self._chunks_collection = doc_settings.collections.transcript_chunks
        self._vectors_collection = vector_settings.collections.transcript_chunks
        self._doc_batch_size = rag_settings.document_batch_size
        self._vector_batch_size = rag_settings.vector_batch_size
        self._logger = get_logger(__name__)

    async def ensure_collection(self, vector_size: int) -> bool:
        """Create the vector collection and the row indexes if missing."""
        await self._doc_db.create_index(
            self._chunks_collection,
            [("media_id", 1), ("chunk_index", 1)],
        )
        return await self._vector_db.create_collection(
            name=self._vectors_collection,
            vector_size=vector_size,
            distance_metric="cosine",
            payload_indexes=PAYLOAD_INDEXES,
        )

    async def write_all(
        self,
        chunks: list[TranscriptChunk],
        vectors: list[list[float]],
    ) -> int:
        if len(chunks) != len(vectors):
            raise ValueError(
                f"Got {len(vectors)} vectors for {len(chunks)} chunks"
            )
        if not chunks:
            return 0

        media_id = chunks[0].media_id
        upserted_ids: list[str] = []
        try:
            for batch in _batches(chunks, self._doc_batch_size):
                await self._doc_db.insert_many(
                    self._chunks_collection,
                    [c.model_dump(mode="json") for c in batch],
                )

            points = [
                VectorPoint(
                    id=chunk.id,
                    vector=vector,
                    payload={
                        "media_id": chunk.media_id,
                        "module_id": chunk.module_id,
                        "chunk_index": chunk.chunk_index,
                        "start_time": round(chunk.start_time),
                    },
                )
                for chunk, vector in zip(chunks, vectors, strict=True)
            ]
            for batch in _batches(points, self._vector_batch_size):
                await self._vector_db.upsert(self._vectors_collection, batch)
                upserted_ids.extend(p.id for p in batch)
        except Exception:
            self._logger.exception(
                "Chunk write failed; compensating",
                extra={"media_id": media_id, "vectors_written": len(upserted_ids)},
            )
            await self._compensate(media_id, upserted_ids)
            raise

        self._logger.info(
            "Chunks stored",
            extra={"media_id": media_id, "chunks": len(chunks)},
        )
        return len(upserted_ids)

    async def _delete_vectors(self, ids: list[str]) -> int:
        deleted = 0
        for batch in _batches(ids, self._vector_batch_size):
            deleted += await self._vector_db.delete_by_ids(
                self._vectors_collection, batch
            )
        return deleted

    async def _compensate(self, media_id: str, vector_ids: list[str]) -> None:
        rows, vectors = await asyncio.gather(
            self._doc_db.delete_many(self._chunks_collection, {"media_id": media_id}),
            self._delete_vectors(vector_ids),
            return_exceptions=True,
        )
        for store, outcome in (("rows", rows), ("vectors", vectors)):
            if isinstance(outcome, BaseException):
                self._logger.error(
                    "Compensation step failed",
                    extra={"media_id": media_id, "store": store},
                    exc_info=outcome,
                )
            else:
                self._logger.info(
                    "Compensation step done",
                    extra={"media_id": media_id, "store": store, "deleted": outcome},
                )

    async def _chunk_docs(self, filters: dict[str, Any]) -> list[dict[str, Any]]:
        docs: list[dict[str, Any]] = []
        while True:
            page = await self._doc_db.find(
                self._chunks_collection,
                filters,
                skip=len(docs),
                limit=_PAGE_SIZE,
                sort=[("chunk_index", 1)],
            )
            docs.extend(page)
            if len(page) < _PAGE_SIZE:
                return docs

    async def delete_all(self, media_id: str) -> int:
        docs = await self._chunk_docs({"media_id": media_id})
        chunk_ids = [d["id"] for d in docs]
        if not chunk_ids:
            # Vectors can outlive rows after a partial compensation
            await self._vector_db.delete_by_filter(
                self._vectors_collection, {"media_id": media_id}
            )
            return 0

        rows, _ = await asyncio.gather(
            self._doc_db.delete_many(self._chunks_collection, {"media_id": media_id}),
            self._delete_vectors(chunk_ids),
        )
        self._logger.info(
            "Chunks deleted",
            extra={"media_id": media_id, "chunks": rows},
        )
        return rows

    async def get_chunks(self, chunk_ids: list[str]) -> dict[str, TranscriptChunk]:
        if not chunk_ids:
            return {}
        docs = await self._doc_db.find(
            self._chunks_collection,
            {"id": {"$in": chunk_ids}},
            limit=len(chunk_ids),
        )
        return {d["id"]: TranscriptChunk.model_validate(d) for d in docs}

    async def list_chunks(self, media_id: str) -> list[TranscriptChunk]:
        docs = await self._chunk_docs({"media_id": media_id})
        return [TranscriptChunk.model_validate(d) for d in docs]
