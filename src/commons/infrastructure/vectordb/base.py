"""Abstract base class for vector index operations."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Literal

from src.commons.infrastructure.blob.base import HealthStatus


@dataclass
class VectorPoint:
    """A vector with its ID and payload."""

    id: str
    vector: list[float]
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass
class SearchResult:
    """A single nearest-neighbour match."""

    id: str
    score: float
    payload: dict[str, Any]


class VectorDBBase(ABC):
    """Nearest-neighbour index over embedding vectors.

    Filters are flat equality maps ({"media_id": "..."}); a list value
    matches any of its elements.

    Implementations:
    - Qdrant (production)
    - In-memory cosine index (tests and local development)
    """

    @abstractmethod
    async def create_collection(
        self,
        name: str,
        vector_size: int,
        distance_metric: Literal["cosine", "euclidean", "dot"] = "cosine",
        payload_indexes: list[str] | None = None,
    ) -> bool:
        """Create a collection if it does not exist.

        Args:
            name: Collection name.
            vector_size: Dimension of vectors.
            distance_metric: Similarity metric.
            payload_indexes: Payload fields to index for filtering.

        Returns:
            True if created, False if it already existed.
        """

    @abstractmethod
    async def collection_exists(self, name: str) -> bool:
        """Check whether a collection exists."""

    @abstractmethod
    async def upsert(
        self,
        collection: str,
        points: list[VectorPoint],
    ) -> int:
        """Insert or replace vectors.

        Returns:
            Count of upserted points.
        """

    @abstractmethod
    async def search(
        self,
        collection: str,
        query_vector: list[float],
        limit: int = 10,
        filters: dict[str, Any] | None = None,
        score_threshold: float | None = None,
    ) -> list[SearchResult]:
        """Search for similar vectors.

        Args:
            collection: Collection name.
            query_vector: Query embedding.
            limit: Maximum results to return.
            filters: Optional payload equality filters.
            score_threshold: Minimum similarity score.

        Returns:
            Matches sorted by descending similarity.
        """

    @abstractmethod
    async def delete_by_ids(
        self,
        collection: str,
        ids: list[str],
    ) -> int:
        """Delete vectors by ID.

        Returns:
            Count of IDs submitted for deletion.
        """

    @abstractmethod
    async def delete_by_filter(
        self,
        collection: str,
        filters: dict[str, Any],
    ) -> int:
        """Delete every vector whose payload matches the filters.

        Returns:
            Count of deleted vectors.
        """

    @abstractmethod
    async def count(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
    ) -> int:
        """Count vectors, optionally restricted by payload filters."""

    @abstractmethod
    async def health_check(self) -> HealthStatus:
        """Check service health."""
