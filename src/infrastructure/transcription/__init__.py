"""Transcription service abstractions and implementations."""

from src.infrastructure.transcription.base import (
    TranscriptionResponse,
    TranscriptionServiceBase,
)
from src.infrastructure.transcription.memory_transcription import (
    StaticTranscriptionService,
)
from src.infrastructure.transcription.openai_audio import OpenAIAudioTranscription

__all__ = [
    "TranscriptionResponse",
    "TranscriptionServiceBase",
    "OpenAIAudioTranscription",
    "StaticTranscriptionService",
]
