"""Unit tests for the in-memory adapters."""

import asyncio
import io

import pytest

from src.commons.infrastructure.blob import InMemoryBlobStorage
from src.commons.infrastructure.blob.base import BlobNotFoundError
from src.commons.infrastructure.documentdb import InMemoryDocumentDB
from src.commons.infrastructure.queue import InMemoryQueuePublisher
from src.commons.infrastructure.vectordb import InMemoryVectorDB
from src.commons.infrastructure.vectordb.base import VectorPoint
from src.infrastructure.embeddings import HashEmbeddingService


class TestInMemoryDocumentDB:
    """Tests for the Mongo filter subset and CAS updates."""

    @pytest.fixture
    async def db(self):
        db = InMemoryDocumentDB()
        await db.insert_many(
            "items",
            [
                {"id": "a", "status": "queued", "n": 3},
                {"id": "b", "status": "failed", "n": 1},
                {"id": "c", "status": "completed", "n": 2},
            ],
        )
        return db

    async def test_duplicate_id_rejected(self, db):
        with pytest.raises(ValueError, match="Duplicate"):
            await db.insert("items", {"id": "a"})

    async def test_operators(self, db):
        in_ = await db.find("items", {"status": {"$in": ["queued", "failed"]}})
        nin = await db.find("items", {"status": {"$nin": ["queued", "failed"]}})
        ne = await db.find("items", {"status": {"$ne": "failed"}})

        assert {d["id"] for d in in_} == {"a", "b"}
        assert [d["id"] for d in nin] == ["c"]
        assert {d["id"] for d in ne} == {"a", "c"}

    async def test_unsupported_operator(self, db):
        with pytest.raises(ValueError, match=r"\$gt"):
            await db.find("items", {"n": {"$gt": 1}})

    async def test_sort_skip_limit(self, db):
        docs = await db.find("items", {}, skip=1, limit=1, sort=[("n", -1)])

        assert [d["id"] for d in docs] == ["c"]

    async def test_returned_documents_are_copies(self, db):
        doc = await db.find_by_id("items", "a")
        doc["status"] = "mutated"

        assert (await db.find_by_id("items", "a"))["status"] == "queued"

    async def test_update_if_guards(self, db):
        applied = await db.update_if(
            "items", "a", {"status": "queued"}, {"status": "processing"}
        )
        missed = await db.update_if(
            "items", "a", {"status": "queued"}, {"status": "failed"}
        )

        assert applied is True
        assert missed is False
        assert (await db.find_by_id("items", "a"))["status"] == "processing"

    async def test_update_if_never_rewrites_id(self, db):
        await db.update("items", "a", {"id": "z", "n": 9})

        doc = await db.find_by_id("items", "a")
        assert doc["id"] == "a"
        assert doc["n"] == 9

    async def test_concurrent_cas_has_one_winner(self, db):
        results = await asyncio.gather(
            *(
                db.update_if("items", "b", {"status": "failed"}, {"status": s})
                for s in ("queued", "cancelled", "processing")
            )
        )

        assert results.count(True) == 1

    async def test_bulk_operations(self, db):
        updated = await db.update_many(
            "items", {"status": {"$ne": "completed"}}, {"flag": True}
        )
        removed = await db.delete_many("items", {"flag": True})

        assert updated == 2
        assert removed == 2
        assert await db.count("items") == 1
        assert await db.delete("items", "missing") is False


class TestInMemoryBlobStorage:
    """Tests for object reads and metadata."""

    async def test_upload_bytes_and_stream(self):
        blob = InMemoryBlobStorage()

        meta = await blob.upload(
            "media", "a.json", b"{}", content_type="application/json"
        )
        await blob.upload("media", "b.bin", io.BytesIO(b"abc"))

        assert meta.size_bytes == 2
        assert await blob.download("media", "b.bin") == b"abc"
        assert await blob.bucket_exists("media")

    async def test_missing_object(self):
        blob = InMemoryBlobStorage()

        with pytest.raises(BlobNotFoundError):
            await blob.download("media", "nope")
        with pytest.raises(BlobNotFoundError):
            await blob.get_metadata("media", "nope")
        assert await blob.delete("media", "nope") is False

    async def test_create_bucket_once(self):
        blob = InMemoryBlobStorage()

        assert await blob.create_bucket("media") is True
        assert await blob.create_bucket("media") is False


class TestInMemoryQueuePublisher:
    """Tests for dedup-aware publishing."""

    async def test_sequences_and_dedup(self):
        queue = InMemoryQueuePublisher(stream="ENCODING")

        first = await queue.publish("encoding.jobs", {"a": 1}, dedup_id="j:1")
        again = await queue.publish("encoding.jobs", {"a": 1}, dedup_id="j:1")
        second = await queue.publish("encoding.jobs", {"a": 2}, dedup_id="j:2")

        assert first.message_id == "ENCODING:1"
        assert again.duplicate is True
        assert again.message_id == first.message_id
        assert second.sequence == 2
        assert len(queue.messages) == 2


class TestInMemoryVectorDB:
    """Tests for cosine search and filtered deletes."""

    @pytest.fixture
    async def db(self):
        db = InMemoryVectorDB()
        await db.create_collection("c", vector_size=2)
        await db.upsert(
            "c",
            [
                VectorPoint(id="x", vector=[1.0, 0.0], payload={"media_id": "m1"}),
                VectorPoint(id="y", vector=[0.6, 0.8], payload={"media_id": "m1"}),
                VectorPoint(id="z", vector=[0.0, 1.0], payload={"media_id": "m2"}),
            ],
        )
        return db

    async def test_search_ranks_by_cosine(self, db):
        results = await db.search("c", [1.0, 0.0], limit=2)

        assert [r.id for r in results] == ["x", "y"]
        assert results[0].score == pytest.approx(1.0)
        assert results[1].score == pytest.approx(0.6)

    async def test_search_filters_and_threshold(self, db):
        results = await db.search(
            "c", [1.0, 0.0], filters={"media_id": "m1"}, score_threshold=0.7
        )

        assert [r.id for r in results] == ["x"]

    async def test_wrong_vector_size(self, db):
        with pytest.raises(ValueError, match="does not match"):
            await db.upsert("c", [VectorPoint(id="w", vector=[1.0, 0.0, 0.0])])

    async def test_delete_by_filter(self, db):
        assert await db.delete_by_filter("c", {"media_id": "m1"}) == 2
        assert await db.count("c") == 1
        assert await db.create_collection("c", vector_size=2) is False


class TestHashEmbeddingService:
    """Tests for the deterministic embedder."""

    async def test_deterministic_and_normalized(self):
        service = HashEmbeddingService(dimensions=32)

        a = await service.embed_text("python loops")
        b = await service.embed_text("Python   LOOPS")

        assert a.vector == b.vector
        assert sum(v * v for v in a.vector) == pytest.approx(1.0)
        assert a.tokens_used == 2

    async def test_empty_text_is_zero_vector(self):
        service = HashEmbeddingService(dimensions=8)

        result = await service.embed_text("   ")

        assert result.vector == [0.0] * 8

    async def test_batch(self):
        service = HashEmbeddingService(dimensions=16, batch_size=4)

        results = await service.embed_texts(["a", "b", "c"])

        assert len(results) == 3
        assert service.max_batch_size == 4
        assert service.dimensions == 16
