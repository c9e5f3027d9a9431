"""Qdrant implementation of the vector index."""

import time
from typing import Any, Literal

from qdrant_client import AsyncQdrantClient, models
from qdrant_client.http.exceptions import UnexpectedResponse

from src.commons.infrastructure.blob.base import HealthStatus
from src.commons.infrastructure.vectordb.base import (
    SearchResult,
    VectorDBBase,
    VectorPoint,
)

_DISTANCES = {
    "cosine": models.Distance.COSINE,
    "euclidean": models.Distance.EUCLID,
    "dot": models.Distance.DOT,
}


class QdrantVectorDB(VectorDBBase):
    """Qdrant vector index.

    Point IDs must be UUID strings; chunk IDs are generated that way.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6333,
        grpc_port: int = 6334,
        api_key: str | None = None,
        url: str | None = None,
        https: bool = False,
        prefer_grpc: bool = True,
    ) -> None:
        """Initialize Qdrant client.

        Args:
            host: Qdrant server host.
            port: Qdrant HTTP port.
            grpc_port: Qdrant gRPC port.
            api_key: API key for Qdrant Cloud.
            url: Full URL (overrides host/port, for Qdrant Cloud).
            https: Use TLS when connecting by host/port.
            prefer_grpc: Use gRPC for operations.
        """
        if url:
            self._client = AsyncQdrantClient(
                url=url,
                api_key=api_key,
                prefer_grpc=prefer_grpc,
            )
        else:
            self._client = AsyncQdrantClient(
                host=host,
                port=port,
                grpc_port=grpc_port,
                api_key=api_key,
                https=https,
                prefer_grpc=prefer_grpc,
            )
        self._target = url or f"{host}:{port}"

    async def create_collection(
        self,
        name: str,
        vector_size: int,
        distance_metric: Literal["cosine", "euclidean", "dot"] = "cosine",
        payload_indexes: list[str] | None = None,
    ) -> bool:
        """Create a collection if it does not exist."""
        if await self.collection_exists(name):
            return False

        await self._client.create_collection(
            collection_name=name,
            vectors_config=models.VectorParams(
                size=vector_size,
                distance=_DISTANCES[distance_metric],
            ),
        )
        for field_name in payload_indexes or []:
            await self._client.create_payload_index(
                collection_name=name,
                field_name=field_name,
                field_schema=models.PayloadSchemaType.KEYWORD,
            )
        return True

    async def collection_exists(self, name: str) -> bool:
        """Check whether a collection exists."""
        return bool(await self._client.collection_exists(collection_name=name))

    async def upsert(
        self,
        collection: str,
        points: list[VectorPoint],
    ) -> int:
        """Insert or replace vectors."""
        if not points:
            return 0

        await self._client.upsert(
            collection_name=collection,
            points=[
                models.PointStruct(id=p.id, vector=p.vector, payload=p.payload)
                for p in points
            ],
            wait=True,
        )
        return len(points)

    async def search(
        self,
        collection: str,
        query_vector: list[float],
        limit: int = 10,
        filters: dict[str, Any] | None = None,
        score_threshold: float | None = None,
    ) -> list[SearchResult]:
        """Search for similar vectors."""
        response = await self._client.query_points(
            collection_name=collection,
            query=query_vector,
            limit=limit,
            query_filter=self._build_filter(filters) if filters else None,
            score_threshold=score_threshold,
            with_payload=True,
        )
        return [
            SearchResult(
                id=str(point.id),
                score=point.score or 0.0,
                payload=point.payload or {},
            )
            for point in response.points
        ]

    async def delete_by_ids(
        self,
        collection: str,
        ids: list[str],
    ) -> int:
        """Delete vectors by ID."""
        if not ids:
            return 0

        await self._client.delete(
            collection_name=collection,
            points_selector=models.PointIdsList(points=list(ids)),
            wait=True,
        )
        return len(ids)

    async def delete_by_filter(
        self,
        collection: str,
        filters: dict[str, Any],
    ) -> int:
        """Delete every vector whose payload matches the filters."""
        before = await self.count(collection, filters)
        await self._client.delete(
            collection_name=collection,
            points_selector=models.FilterSelector(filter=self._build_filter(filters)),
            wait=True,
        )
        return before

    async def count(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
    ) -> int:
        """Count vectors, optionally restricted by payload filters."""
        result = await self._client.count(
            collection_name=collection,
            count_filter=self._build_filter(filters) if filters else None,
            exact=True,
        )
        return int(result.count)

    async def health_check(self) -> HealthStatus:
        """Check service health."""
        start = time.perf_counter()
        try:
            await self._client.get_collections()
        except (UnexpectedResponse, OSError) as e:
            return HealthStatus(
                healthy=False,
                latency_ms=(time.perf_counter() - start) * 1000,
                message=f"Qdrant health check failed: {e}",
                details={"target": self._target, "error": str(e)},
            )
        return HealthStatus(
            healthy=True,
            latency_ms=(time.perf_counter() - start) * 1000,
            message="Qdrant is healthy",
            details={"target": self._target},
        )

    def _build_filter(self, filters: dict[str, Any]) -> models.Filter:
        """Translate {"field": value | [values]} into a Qdrant must-filter."""
        conditions: list[models.Condition] = []
        for key, value in filters.items():
            if isinstance(value, list | tuple | set):
                match: models.MatchAny | models.MatchValue = models.MatchAny(
                    any=list(value)
                )
            else:
                match = models.MatchValue(value=value)
            conditions.append(models.FieldCondition(key=key, match=match))
        return models.Filter(must=conditions)

    async def close(self) -> None:
        """Close the client connection."""
        await self._client.close()
