"""In-memory state store for tests and local development."""

import asyncio
import copy
from typing import Any

from src.commons.infrastructure.blob.base import HealthStatus
from src.commons.infrastructure.documentdb.base import DocumentDBBase


def _match_value(value: Any, condition: Any) -> bool:
    if isinstance(condition, dict) and condition and all(
        k.startswith("$") for k in condition
    ):
        for op, arg in condition.items():
            if op == "$in" and value not in arg:
                return False
            if op == "$nin" and value in arg:
                return False
            if op == "$ne" and value == arg:
                return False
            if op not in ("$in", "$nin", "$ne"):
                raise ValueError(f"Unsupported filter operator: {op}")
        return True
    return bool(value == condition)


def matches(document: dict[str, Any], filters: dict[str, Any]) -> bool:
    """Evaluate the supported Mongo filter subset against a document."""
    return all(
        _match_value(document.get(key), condition)
        for key, condition in filters.items()
    )


class InMemoryDocumentDB(DocumentDBBase):
    """Dict-backed store with the same filter semantics as the Mongo adapter.

    A single lock serializes writes so ``update_if`` keeps its
    compare-and-set guarantee under concurrent coroutines.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._lock = asyncio.Lock()

    def _collection(self, name: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(name, {})

    async def insert(
        self,
        collection: str,
        document: dict[str, Any],
    ) -> str:
        async with self._lock:
            store = self._collection(collection)
            doc_id = str(document["id"])
            if doc_id in store:
                raise ValueError(f"Duplicate id {doc_id} in {collection}")
            store[doc_id] = copy.deepcopy(document)
            return doc_id

    async def insert_many(
        self,
        collection: str,
        documents: list[dict[str, Any]],
    ) -> list[str]:
        return [await self.insert(collection, doc) for doc in documents]

    async def find_by_id(
        self,
        collection: str,
        document_id: str,
    ) -> dict[str, Any] | None:
        doc = self._collection(collection).get(document_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def find(
        self,
        collection: str,
        filters: dict[str, Any],
        skip: int = 0,
        limit: int = 100,
        sort: list[tuple[str, int]] | None = None,
    ) -> list[dict[str, Any]]:
        docs = [
            doc
            for doc in self._collection(collection).values()
            if matches(doc, filters)
        ]
        for field_name, direction in reversed(sort or []):
            docs.sort(key=lambda d: d.get(field_name), reverse=direction < 0)
        return [copy.deepcopy(d) for d in docs[skip : skip + limit]]

    async def find_one(
        self,
        collection: str,
        filters: dict[str, Any],
    ) -> dict[str, Any] | None:
        found = await self.find(collection, filters, limit=1)
        return found[0] if found else None

    async def update(
        self,
        collection: str,
        document_id: str,
        updates: dict[str, Any],
    ) -> bool:
        return await self.update_if(collection, document_id, {}, updates)

    async def update_if(
        self,
        collection: str,
        document_id: str,
        conditions: dict[str, Any],
        updates: dict[str, Any],
    ) -> bool:
        async with self._lock:
            doc = self._collection(collection).get(document_id)
            if doc is None or not matches(doc, conditions):
                return False
            doc.update({k: copy.deepcopy(v) for k, v in updates.items() if k != "id"})
            return True

    async def update_many(
        self,
        collection: str,
        filters: dict[str, Any],
        updates: dict[str, Any],
    ) -> int:
        async with self._lock:
            matched = [
                doc
                for doc in self._collection(collection).values()
                if matches(doc, filters)
            ]
            for doc in matched:
                doc.update(copy.deepcopy(updates))
            return len(matched)

    async def delete(
        self,
        collection: str,
        document_id: str,
    ) -> bool:
        async with self._lock:
            return self._collection(collection).pop(document_id, None) is not None

    async def delete_many(
        self,
        collection: str,
        filters: dict[str, Any],
    ) -> int:
        async with self._lock:
            store = self._collection(collection)
            doomed = [doc_id for doc_id, doc in store.items() if matches(doc, filters)]
            for doc_id in doomed:
                del store[doc_id]
            return len(doomed)

    async def count(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
    ) -> int:
        return sum(
            1
            for doc in self._collection(collection).values()
            if matches(doc, filters or {})
        )

    async def create_index(
        self,
        collection: str,
        fields: list[tuple[str, int]],
        unique: bool = False,
        name: str | None = None,
    ) -> str:
        self._collection(collection)
        return name or "_".join(f"{f}_{d}" for f, d in fields)

    async def health_check(self) -> HealthStatus:
        return HealthStatus(
            healthy=True,
            latency_ms=0.0,
            message="In-memory state store",
            details={"collections": str(len(self._collections))},
        )
