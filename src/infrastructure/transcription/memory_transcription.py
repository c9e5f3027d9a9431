"""Canned transcription service for tests and local development."""

import json

from src.infrastructure.transcription.base import (
    TranscriptionResponse,
    TranscriptionServiceBase,
)

_DEFAULT_RESPONSE = json.dumps(
    {
        "language": "ar",
        "duration": 10.0,
        "text": "مرحبا بكم في الدرس. today we talk about Python.",
        "segments": [
            {"id": 0, "start": 0.0, "end": 4.0, "text": "مرحبا بكم في الدرس."},
            {"id": 1, "start": 4.0, "end": 10.0, "text": "today we talk about Python."},
        ],
    },
    ensure_ascii=False,
)


class StaticTranscriptionService(TranscriptionServiceBase):
    """Returns the same answer for every request and records the calls."""

    def __init__(self, response_text: str = _DEFAULT_RESPONSE) -> None:
        self._response_text = response_text
        self.calls: list[tuple[int, str]] = []

    async def transcribe(
        self,
        audio: bytes,
        audio_format: str,
        instructions: str,
    ) -> TranscriptionResponse:
        self.calls.append((len(audio), audio_format))
        return TranscriptionResponse(text=self._response_text, model=self.model_name)

    @property
    def model_name(self) -> str:
        return "static"
