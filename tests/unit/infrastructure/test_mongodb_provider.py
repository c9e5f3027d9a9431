"""Unit tests for MongoDB state store provider."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pymongo.errors import ServerSelectionTimeoutError


class TestMongoDBDocumentDB:
    """Tests for MongoDBDocumentDB provider.

    These tests verify the ID mapping between the domain ``id`` and
    MongoDB's ``_id`` field, and the compare-and-set update.
    """

    @pytest.fixture
    def mock_motor_client(self):
        """Create a mock Motor client."""
        with patch(
            "src.commons.infrastructure.documentdb.mongodb_provider.AsyncIOMotorClient"
        ) as mock_client_class:
            mock_client = MagicMock()
            mock_db = MagicMock()
            mock_collection = MagicMock()

            mock_client.__getitem__ = MagicMock(return_value=mock_db)
            mock_db.__getitem__ = MagicMock(return_value=mock_collection)

            mock_client_class.return_value = mock_client

            yield {
                "client_class": mock_client_class,
                "client": mock_client,
                "db": mock_db,
                "collection": mock_collection,
            }

    @pytest.fixture
    def mongodb_provider(self, mock_motor_client):
        """Create MongoDB provider with mocked client."""
        from src.commons.infrastructure.documentdb.mongodb_provider import (
            MongoDBDocumentDB,
        )

        provider = MongoDBDocumentDB(
            connection_string="mongodb://localhost:27017",
            database_name="test_db",
        )
        provider._db = mock_motor_client["db"]
        provider._client = mock_motor_client["client"]
        return provider

    # =========================================================================
    # Insert Tests
    # =========================================================================

    async def test_insert_uses_id_as_mongodb_id(
        self, mongodb_provider, mock_motor_client
    ):
        collection = mock_motor_client["collection"]
        collection.insert_one = AsyncMock(
            return_value=MagicMock(inserted_id="media-123")
        )

        document = {"id": "media-123", "title": "Lesson 1", "status": "uploading"}

        result = await mongodb_provider.insert("media", document)

        call_args = collection.insert_one.call_args[0][0]
        assert call_args["_id"] == "media-123"
        assert "id" not in call_args
        assert result == "media-123"
        # Original document should be unchanged
        assert document["id"] == "media-123"
        assert "_id" not in document

    async def test_insert_many_keeps_order(self, mongodb_provider, mock_motor_client):
        collection = mock_motor_client["collection"]
        collection.insert_many = AsyncMock(
            return_value=MagicMock(inserted_ids=["v-1", "v-2"])
        )

        result = await mongodb_provider.insert_many(
            "media_variants",
            [{"id": "v-1", "quality": "720p"}, {"id": "v-2", "quality": "480p"}],
        )

        docs = collection.insert_many.call_args[0][0]
        assert [d["_id"] for d in docs] == ["v-1", "v-2"]
        assert collection.insert_many.call_args[1]["ordered"] is True
        assert result == ["v-1", "v-2"]

    async def test_insert_many_empty_list(self, mongodb_provider, mock_motor_client):
        collection = mock_motor_client["collection"]
        collection.insert_many = AsyncMock()

        assert await mongodb_provider.insert_many("media_variants", []) == []
        collection.insert_many.assert_not_called()

    # =========================================================================
    # Find Tests
    # =========================================================================

    async def test_find_by_id_returns_id_field(
        self, mongodb_provider, mock_motor_client
    ):
        collection = mock_motor_client["collection"]
        collection.find_one = AsyncMock(
            return_value={"_id": "media-123", "title": "Lesson 1"}
        )

        result = await mongodb_provider.find_by_id("media", "media-123")

        collection.find_one.assert_called_once_with({"_id": "media-123"})
        assert result == {"id": "media-123", "title": "Lesson 1"}

    async def test_find_by_id_not_found(self, mongodb_provider, mock_motor_client):
        collection = mock_motor_client["collection"]
        collection.find_one = AsyncMock(return_value=None)

        assert await mongodb_provider.find_by_id("media", "missing") is None

    async def test_find_maps_id_filter_and_results(
        self, mongodb_provider, mock_motor_client
    ):
        collection = mock_motor_client["collection"]

        async def mock_cursor():
            yield {"_id": "chunk-1", "chunk_index": 0}
            yield {"_id": "chunk-2", "chunk_index": 1}

        cursor_mock = MagicMock()
        cursor_mock.sort = MagicMock(return_value=cursor_mock)
        cursor_mock.skip = MagicMock(return_value=cursor_mock)
        cursor_mock.limit = MagicMock(return_value=cursor_mock)
        cursor_mock.__aiter__ = lambda self: mock_cursor()
        collection.find = MagicMock(return_value=cursor_mock)

        results = await mongodb_provider.find(
            "transcript_chunks",
            {"id": {"$in": ["chunk-1", "chunk-2"]}},
            sort=[("chunk_index", 1)],
        )

        collection.find.assert_called_once_with(
            {"_id": {"$in": ["chunk-1", "chunk-2"]}}
        )
        cursor_mock.sort.assert_called_once_with([("chunk_index", 1)])
        assert [r["id"] for r in results] == ["chunk-1", "chunk-2"]
        assert all("_id" not in r for r in results)

    # =========================================================================
    # Update Tests
    # =========================================================================

    async def test_update_if_adds_conditions_to_filter(
        self, mongodb_provider, mock_motor_client
    ):
        collection = mock_motor_client["collection"]
        collection.update_one = AsyncMock(return_value=MagicMock(matched_count=1))

        applied = await mongodb_provider.update_if(
            "media",
            "media-123",
            {"status": {"$in": ["uploading", "encoding"]}},
            {"status": "ready", "id": "ignored"},
        )

        assert applied is True
        collection.update_one.assert_called_once_with(
            {"_id": "media-123", "status": {"$in": ["uploading", "encoding"]}},
            {"$set": {"status": "ready"}},
        )

    async def test_update_if_guard_miss(self, mongodb_provider, mock_motor_client):
        collection = mock_motor_client["collection"]
        collection.update_one = AsyncMock(return_value=MagicMock(matched_count=0))

        applied = await mongodb_provider.update_if(
            "media", "media-123", {"status": {"$in": ["uploading"]}}, {"status": "x"}
        )

        assert applied is False

    async def test_update_returns_true_when_matched_but_not_modified(
        self, mongodb_provider, mock_motor_client
    ):
        collection = mock_motor_client["collection"]
        collection.update_one = AsyncMock(
            return_value=MagicMock(matched_count=1, modified_count=0)
        )

        assert await mongodb_provider.update("media", "media-123", {"title": "Same"})
        collection.update_one.assert_called_once_with(
            {"_id": "media-123"}, {"$set": {"title": "Same"}}
        )

    async def test_update_many_returns_matched_count(
        self, mongodb_provider, mock_motor_client
    ):
        collection = mock_motor_client["collection"]
        collection.update_many = AsyncMock(return_value=MagicMock(matched_count=3))

        count = await mongodb_provider.update_many(
            "media_variants",
            {"media_id": "media-123", "status": {"$in": ["error"]}},
            {"status": "pending"},
        )

        assert count == 3

    # =========================================================================
    # Delete / Health Tests
    # =========================================================================

    async def test_delete_many_maps_filters(self, mongodb_provider, mock_motor_client):
        collection = mock_motor_client["collection"]
        collection.delete_many = AsyncMock(return_value=MagicMock(deleted_count=4))

        deleted = await mongodb_provider.delete_many(
            "transcript_chunks", {"media_id": "media-123"}
        )

        assert deleted == 4
        collection.delete_many.assert_called_once_with({"media_id": "media-123"})

    async def test_delete_not_found(self, mongodb_provider, mock_motor_client):
        collection = mock_motor_client["collection"]
        collection.delete_one = AsyncMock(return_value=MagicMock(deleted_count=0))

        assert await mongodb_provider.delete("media", "missing") is False

    async def test_health_check_reports_failure(
        self, mongodb_provider, mock_motor_client
    ):
        client = mock_motor_client["client"]
        client.admin.command = AsyncMock(
            side_effect=ServerSelectionTimeoutError("no servers")
        )

        health = await mongodb_provider.health_check()

        assert health.healthy is False
        assert "no servers" in (health.message or "")
