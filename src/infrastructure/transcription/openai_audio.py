"""OpenAI audio chat implementation of transcription service."""

import base64
from typing import Any, cast

from openai import AsyncOpenAI

from src.infrastructure.transcription.base import (
    TranscriptionResponse,
    TranscriptionServiceBase,
)

# input_audio accepts only these two containers
_API_FORMATS = frozenset({"wav", "mp3"})


class OpenAIAudioTranscription(TranscriptionServiceBase):
    """Transcribes by sending base64 audio to an audio-capable chat model.

    Unlike the Whisper endpoint this lets the system instruction dictate a
    JSON output shape and dialect handling.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-audio-preview",
        temperature: float = 0.1,
        base_url: str | None = None,
        timeout_seconds: float = 300.0,
    ) -> None:
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key.
            model: Audio-capable chat model.
            temperature: Sampling temperature.
            base_url: Optional custom API endpoint.
            timeout_seconds: Request timeout.
        """
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
        )
        self._model = model
        self._temperature = temperature

    async def transcribe(
        self,
        audio: bytes,
        audio_format: str,
        instructions: str,
    ) -> TranscriptionResponse:
        """Send audio inline and return the text answer."""
        api_format = audio_format if audio_format in _API_FORMATS else "wav"
        messages: list[dict[str, Any]] = [
            {"role": "system", "content": instructions},
            {
                "role": "user",
                "content": [
                    {
                        "type": "input_audio",
                        "input_audio": {
                            "data": base64.b64encode(audio).decode("ascii"),
                            "format": api_format,
                        },
                    },
                ],
            },
        ]

        # Cast to Any to work around strict overload typing in OpenAI SDK
        create_fn = cast("Any", self._client.chat.completions.create)
        response = await create_fn(
            model=self._model,
            modalities=["text"],
            messages=messages,
            temperature=self._temperature,
        )

        content = response.choices[0].message.content if response.choices else None
        return TranscriptionResponse(text=content or "", model=self._model)

    @property
    def model_name(self) -> str:
        """Model identifier recorded in transcript metadata."""
        return self._model
