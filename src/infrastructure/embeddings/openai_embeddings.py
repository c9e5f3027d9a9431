"""OpenAI implementation of text embedding service."""

from openai import AsyncOpenAI

from src.commons.telemetry import get_logger
from src.infrastructure.embeddings.base import EmbeddingResult, EmbeddingServiceBase


class OpenAIEmbeddingService(EmbeddingServiceBase):
    """OpenAI implementation of text embedding service.

    Uses the text-embedding-3 family with a reduced output dimension so
    vectors match the index collection.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        dimensions: int = 768,
        batch_size: int = 100,
        base_url: str | None = None,
    ) -> None:
        """Initialize OpenAI embedding client.

        Args:
            api_key: OpenAI API key.
            model: Embedding model to use.
            dimensions: Requested vector size.
            batch_size: Maximum texts per request.
            base_url: Optional custom API endpoint.
        """
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
        )
        self._model = model
        self._dimensions = dimensions
        self._batch_size = batch_size
        self._logger = get_logger(__name__)

    async def embed_text(self, text: str) -> EmbeddingResult:
        """Generate embedding for a single text."""
        response = await self._client.embeddings.create(
            model=self._model,
            input=text if text.strip() else " ",
            dimensions=self._dimensions,
        )

        embedding = response.data[0].embedding
        return EmbeddingResult(
            vector=embedding,
            dimensions=len(embedding),
            model=self._model,
            tokens_used=response.usage.total_tokens if response.usage else None,
        )

    async def embed_texts(self, texts: list[str]) -> list[EmbeddingResult]:
        """Generate embeddings in batches.

        A batch holding a single text goes through the single-input call.
        """
        if not texts:
            return []

        # The API rejects empty strings
        sanitized = [text if text.strip() else " " for text in texts]

        results: list[EmbeddingResult] = []
        for start in range(0, len(sanitized), self._batch_size):
            batch = sanitized[start : start + self._batch_size]
            if len(batch) == 1:
                results.append(await self.embed_text(batch[0]))
                continue

            response = await self._client.embeddings.create(
                model=self._model,
                input=batch,
                dimensions=self._dimensions,
            )
            tokens_per_item = None
            if response.usage:
                tokens_per_item = response.usage.total_tokens // len(batch)

            for data in sorted(response.data, key=lambda d: d.index):
                results.append(
                    EmbeddingResult(
                        vector=data.embedding,
                        dimensions=len(data.embedding),
                        model=self._model,
                        tokens_used=tokens_per_item,
                    )
                )
            self._logger.debug(
                "Embedded batch",
                extra={"batch_start": start, "batch_size": len(batch)},
            )

        return results

    @property
    def dimensions(self) -> int:
        """Dimensions of the produced vectors."""
        return self._dimensions

    @property
    def max_batch_size(self) -> int:
        """Maximum texts per request."""
        return self._batch_size
