"""Deterministic embedder for tests and local development."""

import hashlib
import math
import re

from src.infrastructure.embeddings.base import EmbeddingResult, EmbeddingServiceBase

_TOKEN = re.compile(r"\w+", re.UNICODE)


class HashEmbeddingService(EmbeddingServiceBase):
    """Feature-hashing bag of words.

    Texts sharing words get similar vectors, which is enough to exercise
    search without a model.
    """

    def __init__(self, dimensions: int = 768, batch_size: int = 100) -> None:
        self._dimensions = dimensions
        self._batch_size = batch_size

    def _vector(self, text: str) -> list[float]:
        vector = [0.0] * self._dimensions
        for token in _TOKEN.findall(text.lower()):
            digest = hashlib.sha256(token.encode()).digest()
            bucket = int.from_bytes(digest[:4], "big") % self._dimensions
            sign = 1.0 if digest[4] & 1 else -1.0
            vector[bucket] += sign
        norm = math.sqrt(sum(v * v for v in vector))
        return [v / norm for v in vector] if norm else vector

    async def embed_text(self, text: str) -> EmbeddingResult:
        vector = self._vector(text)
        return EmbeddingResult(
            vector=vector,
            dimensions=self._dimensions,
            model="hash",
            tokens_used=len(_TOKEN.findall(text)),
        )

    async def embed_texts(self, texts: list[str]) -> list[EmbeddingResult]:
        return [await self.embed_text(text) for text in texts]

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def max_batch_size(self) -> int:
        return self._batch_size
