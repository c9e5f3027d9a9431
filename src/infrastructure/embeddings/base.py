"""Abstract base class for embedding services."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class EmbeddingResult:
    """Result from embedding generation."""

    vector: list[float]
    dimensions: int
    model: str
    tokens_used: int | None = None


class EmbeddingServiceBase(ABC):
    """Abstract base class for text embedding services.

    Implementations:
    - OpenAI embeddings (production)
    - Deterministic hashing embedder (tests and local development)
    """

    @abstractmethod
    async def embed_text(self, text: str) -> EmbeddingResult:
        """Generate embedding for a single text.

        Args:
            text: Text to embed.

        Returns:
            Embedding result with vector and metadata.
        """

    @abstractmethod
    async def embed_texts(self, texts: list[str]) -> list[EmbeddingResult]:
        """Generate embeddings for multiple texts.

        Requests are split into batches of at most ``max_batch_size``.

        Args:
            texts: Texts to embed.

        Returns:
            One result per input, in input order. Empty input returns [].
        """

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Dimensions of the produced vectors."""

    @property
    @abstractmethod
    def max_batch_size(self) -> int:
        """Maximum texts per request."""
