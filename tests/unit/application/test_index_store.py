"""Unit tests for DualIndexStore write/compensate/delete."""

import pytest

from src.application.services.index_store import DualIndexStore
from src.domain.models.chunk import TranscriptChunk

COLLECTION = "transcript_chunks"


def _chunks(media_id: str, count: int) -> list[TranscriptChunk]:
    return [
        TranscriptChunk(
            media_id=media_id,
            module_id="mod-1",
            chunk_index=i,
            content=f"chunk {i}",
            token_count=2,
            start_time=i * 10.4,
            end_time=(i + 1) * 10.4,
        )
        for i in range(count)
    ]


def _vectors(count: int, size: int = 64) -> list[list[float]]:
    return [[1.0 if j == i % size else 0.0 for j in range(size)] for i in range(count)]


@pytest.fixture
async def small_batch_store(doc_db, vector_db, settings):
    """Store writing two rows and two vectors per batch."""
    settings.rag.document_batch_size = 2
    settings.rag.vector_batch_size = 2
    store = DualIndexStore(
        doc_db, vector_db, settings.document_db, settings.vector_db, settings.rag
    )
    await store.ensure_collection(64)
    return store


def _fail_on_call(target, method: str, failing_call: int):
    original = getattr(target, method)
    calls = {"n": 0}

    async def flaky(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] == failing_call:
            raise RuntimeError(f"{method} failed")
        return await original(*args, **kwargs)

    setattr(target, method, flaky)


class TestWriteAll:
    """Tests for the all-or-nothing chunk write."""

    async def test_writes_rows_and_vectors(self, small_batch_store, doc_db, vector_db):
        chunks = _chunks("media-1", 5)

        stored = await small_batch_store.write_all(chunks, _vectors(5))

        assert stored == 5
        assert await doc_db.count(COLLECTION, {"media_id": "media-1"}) == 5
        assert await vector_db.count(COLLECTION, {"media_id": "media-1"}) == 5
        results = await vector_db.search(COLLECTION, _vectors(1)[0], limit=1)
        assert results[0].id == chunks[0].id
        assert results[0].payload == {
            "media_id": "media-1",
            "module_id": "mod-1",
            "chunk_index": 0,
            "start_time": 0,
        }

    async def test_vector_failure_leaves_no_residue(
        self, small_batch_store, doc_db, vector_db
    ):
        _fail_on_call(vector_db, "upsert", failing_call=2)

        with pytest.raises(RuntimeError, match="upsert failed"):
            await small_batch_store.write_all(_chunks("media-1", 5), _vectors(5))

        assert await doc_db.count(COLLECTION, {"media_id": "media-1"}) == 0
        assert await vector_db.count(COLLECTION) == 0

    async def test_row_failure_leaves_no_residue(
        self, small_batch_store, doc_db, vector_db
    ):
        _fail_on_call(doc_db, "insert_many", failing_call=2)

        with pytest.raises(RuntimeError, match="insert_many failed"):
            await small_batch_store.write_all(_chunks("media-1", 5), _vectors(5))

        assert await doc_db.count(COLLECTION, {"media_id": "media-1"}) == 0
        assert await vector_db.count(COLLECTION) == 0

    async def test_failed_compensation_still_raises_original(
        self, small_batch_store, doc_db, vector_db
    ):
        _fail_on_call(vector_db, "upsert", failing_call=2)
        _fail_on_call(vector_db, "delete_by_ids", failing_call=1)

        with pytest.raises(RuntimeError, match="upsert failed"):
            await small_batch_store.write_all(_chunks("media-1", 5), _vectors(5))

        assert await doc_db.count(COLLECTION, {"media_id": "media-1"}) == 0

    async def test_other_media_untouched_by_compensation(
        self, small_batch_store, doc_db, vector_db
    ):
        await small_batch_store.write_all(_chunks("media-0", 2), _vectors(2))
        _fail_on_call(vector_db, "upsert", failing_call=1)

        with pytest.raises(RuntimeError):
            await small_batch_store.write_all(_chunks("media-1", 3), _vectors(3))

        assert await doc_db.count(COLLECTION, {"media_id": "media-0"}) == 2
        assert await vector_db.count(COLLECTION) == 2

    async def test_length_mismatch(self, small_batch_store):
        with pytest.raises(ValueError, match="vectors"):
            await small_batch_store.write_all(_chunks("media-1", 2), _vectors(1))

    async def test_empty_write(self, small_batch_store):
        assert await small_batch_store.write_all([], []) == 0


class TestReadAndDelete:
    """Tests for chunk lookups and set deletion."""

    async def test_get_and_list_chunks(self, small_batch_store):
        chunks = _chunks("media-1", 3)
        await small_batch_store.write_all(chunks, _vectors(3))

        found = await small_batch_store.get_chunks([chunks[2].id, "missing"])
        listed = await small_batch_store.list_chunks("media-1")

        assert list(found) == [chunks[2].id]
        assert [c.chunk_index for c in listed] == [0, 1, 2]

    async def test_delete_all(self, small_batch_store, doc_db, vector_db):
        await small_batch_store.write_all(_chunks("media-1", 3), _vectors(3))
        await small_batch_store.write_all(_chunks("media-2", 1), _vectors(1))

        removed = await small_batch_store.delete_all("media-1")

        assert removed == 3
        assert await doc_db.count(COLLECTION, {"media_id": "media-1"}) == 0
        assert await vector_db.count(COLLECTION, {"media_id": "media-1"}) == 0
        assert await vector_db.count(COLLECTION, {"media_id": "media-2"}) == 1

    async def test_delete_all_sweeps_orphan_vectors(
        self, small_batch_store, doc_db, vector_db
    ):
        await small_batch_store.write_all(_chunks("media-1", 2), _vectors(2))
        await doc_db.delete_many(COLLECTION, {"media_id": "media-1"})

        assert await small_batch_store.delete_all("media-1") == 0
        assert await vector_db.count(COLLECTION) == 0
