"""Embedding service abstractions and implementations."""

from src.infrastructure.embeddings.base import EmbeddingResult, EmbeddingServiceBase
from src.infrastructure.embeddings.memory_embeddings import HashEmbeddingService
from src.infrastructure.embeddings.openai_embeddings import OpenAIEmbeddingService

__all__ = [
    "EmbeddingResult",
    "EmbeddingServiceBase",
    "OpenAIEmbeddingService",
    "HashEmbeddingService",
]
