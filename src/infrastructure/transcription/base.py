"""Abstract base class for transcription services."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class TranscriptionResponse:
    """Raw model output for one transcription request."""

    text: str
    model: str


class TranscriptionServiceBase(ABC):
    """Abstract base class for audio transcription models.

    The model is asked to answer with transcript JSON; parsing and
    validation of that answer belong to the caller.

    Implementations:
    - OpenAI audio-capable chat model (production)
    - Static canned response (tests and local development)
    """

    @abstractmethod
    async def transcribe(
        self,
        audio: bytes,
        audio_format: str,
        instructions: str,
    ) -> TranscriptionResponse:
        """Send audio inline to the model.

        Args:
            audio: Raw audio bytes.
            audio_format: Container format label ("wav", "mp3", "mp4").
            instructions: System instruction fixing the output contract.

        Returns:
            The model's raw text answer.
        """

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Model identifier recorded in transcript metadata."""
