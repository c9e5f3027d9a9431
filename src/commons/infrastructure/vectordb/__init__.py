"""Vector index abstractions and implementations."""

from src.commons.infrastructure.vectordb.base import (
    SearchResult,
    VectorDBBase,
    VectorPoint,
)
from src.commons.infrastructure.vectordb.memory_provider import InMemoryVectorDB
from src.commons.infrastructure.vectordb.qdrant_provider import QdrantVectorDB

__all__ = [
    # Base classes
    "SearchResult",
    "VectorDBBase",
    "VectorPoint",
    # Implementations
    "QdrantVectorDB",
    "InMemoryVectorDB",
]
