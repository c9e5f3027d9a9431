"""In-memory vector index for tests and local development."""

import math
from typing import Any, Literal

from src.commons.infrastructure.blob.base import HealthStatus
from src.commons.infrastructure.vectordb.base import (
    SearchResult,
    VectorDBBase,
    VectorPoint,
)


def _matches(payload: dict[str, Any], filters: dict[str, Any] | None) -> bool:
    if not filters:
        return True
    for key, expected in filters.items():
        value = payload.get(key)
        if isinstance(expected, list | tuple | set):
            if value not in expected:
                return False
        elif value != expected:
            return False
    return True


def _cosine(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b, strict=False))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class InMemoryVectorDB(VectorDBBase):
    """Brute-force cosine search over dict-held points."""

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, VectorPoint]] = {}
        self._sizes: dict[str, int] = {}

    async def create_collection(
        self,
        name: str,
        vector_size: int,
        distance_metric: Literal["cosine", "euclidean", "dot"] = "cosine",
        payload_indexes: list[str] | None = None,
    ) -> bool:
        if name in self._collections:
            return False
        self._collections[name] = {}
        self._sizes[name] = vector_size
        return True

    async def collection_exists(self, name: str) -> bool:
        return name in self._collections

    async def upsert(
        self,
        collection: str,
        points: list[VectorPoint],
    ) -> int:
        store = self._collections.setdefault(collection, {})
        for point in points:
            size = self._sizes.get(collection)
            if size is not None and len(point.vector) != size:
                raise ValueError(
                    f"Vector size {len(point.vector)} does not match "
                    f"collection size {size}"
                )
            store[point.id] = VectorPoint(
                id=point.id,
                vector=list(point.vector),
                payload=dict(point.payload),
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
        results = [
            SearchResult(
                id=point.id,
                score=_cosine(query_vector, point.vector),
                payload=dict(point.payload),
            )
            for point in self._collections.get(collection, {}).values()
            if _matches(point.payload, filters)
        ]
        if score_threshold is not None:
            results = [r for r in results if r.score >= score_threshold]
        results.sort(key=lambda r: r.score, reverse=True)
        return results[:limit]

    async def delete_by_ids(
        self,
        collection: str,
        ids: list[str],
    ) -> int:
        store = self._collections.get(collection, {})
        for point_id in ids:
            store.pop(point_id, None)
        return len(ids)

    async def delete_by_filter(
        self,
        collection: str,
        filters: dict[str, Any],
    ) -> int:
        store = self._collections.get(collection, {})
        doomed = [pid for pid, p in store.items() if _matches(p.payload, filters)]
        for point_id in doomed:
            del store[point_id]
        return len(doomed)

    async def count(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
    ) -> int:
        return sum(
            1
            for point in self._collections.get(collection, {}).values()
            if _matches(point.payload, filters)
        )

    async def health_check(self) -> HealthStatus:
        return HealthStatus(
            healthy=True,
            latency_ms=0.0,
            message="In-memory vector index",
            details={"collections": str(len(self._collections))},
        )
