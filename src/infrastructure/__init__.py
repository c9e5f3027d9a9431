"""Infrastructure layer - external service implementations."""

from src.infrastructure.embeddings import (
    EmbeddingResult,
    EmbeddingServiceBase,
    HashEmbeddingService,
    OpenAIEmbeddingService,
)
from src.infrastructure.factory import (
    InfrastructureFactory,
    get_factory,
    reset_factory,
)
from src.infrastructure.transcription import (
    OpenAIAudioTranscription,
    StaticTranscriptionService,
    TranscriptionResponse,
    TranscriptionServiceBase,
)

__all__ = [
    # Factory
    "InfrastructureFactory",
    "get_factory",
    "reset_factory",
    # Transcription
    "TranscriptionServiceBase",
    "TranscriptionResponse",
    "OpenAIAudioTranscription",
    "StaticTranscriptionService",
    # Embeddings
    "EmbeddingServiceBase",
    "EmbeddingResult",
    "OpenAIEmbeddingService",
    "HashEmbeddingService",
]
