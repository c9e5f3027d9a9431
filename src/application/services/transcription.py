"""Speech-to-text for extracted media audio."""

import json
import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from src.application.dtos.transcription import TranscriptionResult, TranscriptionStatus
from src.application.services.media_store import MediaStateStore
from src.commons.infrastructure.blob.base import BlobNotFoundError, BlobStorageBase
from src.commons.settings.models import BlobStorageSettings, TranscriptionSettings
from src.commons.telemetry import LogContext, get_logger
from src.domain.exceptions import MediaNotFoundException
from src.domain.models.media import Media, MediaStatus
from src.domain.models.transcript import (
    Transcript,
    TranscriptMetadata,
    TranscriptSegment,
)
from src.domain.value_objects.storage_paths import MediaPaths
from src.infrastructure.transcription.base import TranscriptionServiceBase

if TYPE_CHECKING:
    from src.application.services.indexing import TranscriptIndexer

TRANSCRIPTION_INSTRUCTIONS = """You are a professional transcriptionist.
Transcribe the following audio accurately.

IMPORTANT INSTRUCTIONS:
- The audio is in Egyptian Arabic (اللهجة المصرية) with technical terms in English
- Preserve English technical terms exactly as spoken
  (e.g., API, function, variable, class, React, JavaScript)
- Include timestamps for each segment of speech
- Output ONLY valid JSON, no markdown formatting

Output the transcription in this exact JSON format:
{
  "language": "ar",
  "duration": <total duration in seconds as number>,
  "text": "<full transcription text>",
  "segments": [
    {
      "id": <segment number starting from 0>,
      "start": <start time in seconds as number>,
      "end": <end time in seconds as number>,
      "text": "<segment text>"
    }
  ]
}

Transcribe the audio now:"""

_MB = 1024 * 1024


def audio_format_for(path: str) -> str:
    """Container label for an audio object, from its extension."""
    lowered = path.lower()
    if lowered.endswith(".mp3"):
        return "mp3"
    if lowered.endswith(".m4a"):
        return "mp4"
    return "wav"


def parse_model_output(raw: str) -> dict[str, Any]:
    """Decode the model's transcript JSON.

    A surrounding Markdown code fence is removed first. Output that still
    fails to decode becomes a single segment holding the raw text.

    Examples:
        >>> parse_model_output('```json\\n{"text": "hi"}\\n```')
        {'text': 'hi'}
        >>> parse_model_output("not json")["segments"][0]["text"]
        'not json'
    """
    body = raw.strip()
    if body.startswith("```json"):
        body = body[7:]
    elif body.startswith("```"):
        body = body[3:]
    if body.endswith("```"):
        body = body[:-3]
    body = body.strip()

    try:
        parsed = json.loads(body)
    except json.JSONDecodeError:
        parsed = None
    if isinstance(parsed, dict):
        return parsed

    get_logger(__name__).warning("Model output is not JSON; using raw text")
    return {
        "language": "ar",
        "duration": 0,
        "text": raw,
        "segments": [{"id": 0, "start": 0, "end": 0, "text": raw}],
    }


class TranscriptionService:
    """Turns a media's extracted audio into a stored transcript.

    Runs as a background task started by the ``audio.extracted`` webhook.
    On success it hands over to the indexer, when one is configured.
    """

    def __init__(
        self,
        state_store: MediaStateStore,
        blob_storage: BlobStorageBase,
        transcriber: TranscriptionServiceBase,
        blob_settings: BlobStorageSettings,
        transcription_settings: TranscriptionSettings,
        indexer: "TranscriptIndexer | None" = None,
    ) -> None:
        """Initialize the service.

        Args:
            state_store: Media persistence.
            blob_storage: Object store holding audio and transcripts.
            transcriber: Audio model adapter.
            blob_settings: Bucket names.
            transcription_settings: Language and size ceiling.
            indexer: Optional indexer run after a successful transcription.
        """
        self._store = state_store
        self._blob = blob_storage
        self._transcriber = transcriber
        self._bucket = blob_settings.buckets.media
        self._settings = transcription_settings
        self._indexer = indexer
        self._logger = get_logger(__name__)

    def _failure(self, media_id: str, error: str) -> TranscriptionResult:
        self._logger.warning(
            "Transcription failed",
            extra={"media_id": media_id, "error": error},
        )
        return TranscriptionResult(
            success=False,
            media_id=media_id,
            error=error,
            next_status=MediaStatus.FAILED_TRANSCRIPTION,
        )

    def _too_large(self, media_id: str, size: int) -> TranscriptionResult:
        limit_mb = round(self._settings.max_audio_bytes / _MB)
        return self._failure(
            media_id,
            f"Audio file exceeds {limit_mb}MB limit ({round(size / _MB)}MB)",
        )

    async def _left_stage(
        self, result: TranscriptionResult, stage: str
    ) -> TranscriptionResult:
        """Report a media that another writer moved out of the AI stage."""
        current = await self._store.get_media(result.media_id)
        if current is None:
            raise MediaNotFoundException(result.media_id)
        self._logger.warning(
            "Media left the AI stage",
            extra={
                "media_id": result.media_id,
                "stage": stage,
                "status": current.status.value,
            },
        )
        return result.model_copy(
            update={
                "success": False,
                "error": (
                    f"Media left the {stage} stage "
                    f"(now '{current.status.value}')"
                ),
                "next_status": current.status,
            }
        )

    async def transcribe_audio(self, media: Media) -> TranscriptionResult:
        """Transcribe a media's audio and store the transcript object.

        Never raises for model or storage failures; they are reported in
        the result with ``failed_transcription`` as the next status.
        """
        started = time.monotonic()
        audio_path = media.audio_path
        if not audio_path:
            return self._failure(media.id, "Media has no extracted audio")

        try:
            try:
                info = await self._blob.get_metadata(self._bucket, audio_path)
            except BlobNotFoundError:
                return self._failure(media.id, f"Audio file not found at {audio_path}")
            if info.size_bytes > self._settings.max_audio_bytes:
                return self._too_large(media.id, info.size_bytes)

            audio = await self._blob.download(self._bucket, audio_path)
            if len(audio) > self._settings.max_audio_bytes:
                return self._too_large(media.id, len(audio))

            self._logger.info(
                "Calling transcription model",
                extra={
                    "media_id": media.id,
                    "audio_bytes": len(audio),
                    "model": self._transcriber.model_name,
                },
            )
            response = await self._transcriber.transcribe(
                audio,
                audio_format_for(audio_path),
                TRANSCRIPTION_INSTRUCTIONS,
            )
            if not response.text.strip():
                return self._failure(
                    media.id, "Empty response from transcription model"
                )

            parsed = parse_model_output(response.text)
            elapsed_ms = int((time.monotonic() - started) * 1000)
            transcript = Transcript(
                video_id=media.id,
                language=self._settings.language,
                detected_language=parsed.get("language") or self._settings.language,
                duration=parsed.get("duration") or 0,
                text=parsed.get("text") or "",
                segments=[
                    TranscriptSegment(
                        id=seg["id"],
                        start=seg["start"],
                        end=seg["end"],
                        text=seg["text"],
                    )
                    for seg in parsed.get("segments") or []
                ],
                metadata=TranscriptMetadata(
                    model=response.model,
                    processed_at=datetime.now(UTC).isoformat(),
                    audio_path=audio_path,
                    audio_size_bytes=len(audio),
                    processing_time_ms=elapsed_ms,
                ),
            )

            transcript_path = MediaPaths(media_id=media.id).transcript
            await self._blob.upload(
                self._bucket,
                transcript_path,
                transcript.to_json().encode("utf-8"),
                content_type="application/json",
                metadata={
                    "videoId": media.id,
                    "language": transcript.detected_language,
                    "duration": str(transcript.duration),
                },
            )
        except (KeyError, TypeError, ValidationError) as e:
            return self._failure(media.id, f"Malformed transcript: {e}")
        except Exception as e:
            self._logger.exception(
                "Transcription error",
                extra={"media_id": media.id},
            )
            return self._failure(media.id, str(e))

        self._logger.info(
            "Transcript stored",
            extra={
                "media_id": media.id,
                "transcript_path": transcript_path,
                "segments": len(transcript.segments),
                "processing_time_ms": elapsed_ms,
            },
        )
        return TranscriptionResult(
            success=True,
            media_id=media.id,
            transcript_path=transcript_path,
            next_status=(
                MediaStatus.INDEXING if self._indexer is not None else MediaStatus.READY
            ),
        )

    async def process_media_transcription(self, media_id: str) -> TranscriptionResult:
        """Run transcription and indexing for a media, updating its status.

        Raises:
            MediaNotFoundException: If the media does not exist.
        """
        with LogContext(media_id=media_id):
            media = await self._store.get_media(media_id)
            if media is None:
                raise MediaNotFoundException(media_id)

            started = await self._store.transition_media(
                media_id,
                MediaStatus.TRANSCRIBING,
                [
                    MediaStatus.ENCODING,
                    MediaStatus.READY,
                    MediaStatus.FAILED_TRANSCRIPTION,
                ],
            )
            if not started:
                return TranscriptionResult(
                    success=False,
                    media_id=media_id,
                    error=(
                        "Media cannot be transcribed from status "
                        f"'{media.status.value}'"
                    ),
                    next_status=media.status,
                )

            result = await self.transcribe_audio(media)
            if not result.success:
                failed = await self._store.transition_media(
                    media_id,
                    MediaStatus.FAILED_TRANSCRIPTION,
                    [MediaStatus.TRANSCRIBING],
                    last_error=result.error,
                )
                if not failed:
                    return await self._left_stage(result, "transcription")
                return result

            await self._store.update_media(
                media_id, transcript_path=result.transcript_path
            )

            if self._indexer is None:
                settled = await self._store.settle_ai_stage(media_id)
                if settled is None:
                    return await self._left_stage(result, "transcription")
                return result.model_copy(update={"next_status": settled})

            moved = await self._store.transition_media(
                media_id,
                MediaStatus.INDEXING,
                [MediaStatus.TRANSCRIBING],
            )
            if not moved:
                return await self._left_stage(result, "transcription")

            try:
                await self._indexer.index_media_transcript(media_id)
            except Exception as e:
                self._logger.exception("Indexing after transcription failed")
                failed = await self._store.transition_media(
                    media_id,
                    MediaStatus.FAILED_INDEXING,
                    [MediaStatus.INDEXING],
                    last_error=str(e),
                )
                if not failed:
                    return await self._left_stage(result, "indexing")
                return result.model_copy(
                    update={
                        "error": str(e),
                        "next_status": MediaStatus.FAILED_INDEXING,
                    }
                )

            settled = await self._store.settle_ai_stage(media_id)
            if settled is None:
                return await self._left_stage(result, "indexing")
            return result.model_copy(update={"next_status": settled})

    async def get_transcript(self, media_id: str) -> Transcript | None:
        """Load a media's stored transcript, or None if absent."""
        media = await self._store.get_media(media_id)
        if media is None or not media.transcript_path:
            return None
        try:
            data = await self._blob.download(self._bucket, media.transcript_path)
        except BlobNotFoundError:
            return None
        return Transcript.model_validate_json(data)

    async def get_transcription_status(self, media_id: str) -> TranscriptionStatus:
        """Report where a media stands in the transcription stage.

        Raises:
            MediaNotFoundException: If the media does not exist.
        """
        media = await self._store.get_media(media_id)
        if media is None:
            raise MediaNotFoundException(media_id)
        error = (
            media.last_error
            if media.status
            in (MediaStatus.FAILED_TRANSCRIPTION, MediaStatus.FAILED_INDEXING)
            else None
        )
        return TranscriptionStatus(
            media_id=media.id,
            status=media.status,
            transcript_path=media.transcript_path,
            error=error,
        )
