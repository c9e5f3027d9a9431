"""Signed callbacks from the encoding worker."""

import hashlib
import hmac
import json
import time
from collections.abc import Callable, Coroutine
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from src.application.services import background
from src.application.services.media_store import MediaStateStore
from src.commons.telemetry import LogContext, get_logger
from src.domain.exceptions import InvalidWebhookPayloadException
from src.domain.models.encoding import JobStatus, JobType, VariantStatus
from src.domain.models.media import MediaStatus, SourceMetadata
from src.domain.models.webhook import (
    AudioExtractedPayload,
    JobCompletedPayload,
    JobFailedPayload,
    JobProgressPayload,
    JobStartedPayload,
    QualityCompletedPayload,
    ThumbnailGeneratedPayload,
    WebhookPayload,
    webhook_payload_adapter,
)

SIGNATURE_HEADER = "X-Webhook-Signature"
DEFAULT_TOLERANCE_SECONDS = 300

_ACTIVE_JOB_STATUSES = (JobStatus.PENDING, JobStatus.QUEUED, JobStatus.PROCESSING)

TranscriptionTrigger = Callable[[str], Coroutine[Any, Any, Any]]


def _hmac_hex(raw_body: bytes, secret: str, timestamp: int | str) -> str:
    signed = f"{timestamp}.".encode() + raw_body
    return hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()


def sign_webhook_payload(
    raw_body: bytes,
    secret: str,
    timestamp: int | None = None,
) -> str:
    """Build a ``t=<unix>,v1=<hex>`` signature header value."""
    ts = int(time.time()) if timestamp is None else timestamp
    return f"t={ts},v1={_hmac_hex(raw_body, secret, ts)}"


def verify_webhook_signature(
    raw_body: bytes,
    header: str | None,
    secret: str,
    *,
    tolerance_seconds: int = DEFAULT_TOLERANCE_SECONDS,
    now: float | None = None,
) -> bool:
    """Check an HMAC-SHA256 signature over ``"{t}.{raw_body}"``.

    Args:
        raw_body: Request body exactly as received.
        header: Value of the signature header.
        secret: Shared webhook secret.
        tolerance_seconds: Maximum age of the signed timestamp.
        now: Current unix time, for tests.

    Returns:
        True only if both parts are present, the timestamp is fresh and
        the digest matches.
    """
    if not header or not secret:
        return False

    parts: dict[str, str] = {}
    for item in header.split(","):
        key, sep, value = item.strip().partition("=")
        if sep:
            parts[key] = value

    timestamp = parts.get("t")
    signature = parts.get("v1")
    if not timestamp or not signature:
        return False
    try:
        ts = int(timestamp)
    except ValueError:
        return False

    current = time.time() if now is None else now
    if abs(current - ts) > tolerance_seconds:
        return False

    expected = _hmac_hex(raw_body, secret, timestamp)
    return hmac.compare_digest(expected, signature)


def parse_webhook_payload(raw_body: bytes) -> WebhookPayload:
    """Decode and validate a webhook body.

    Raises:
        InvalidWebhookPayloadException: On malformed JSON or an unknown or
            incomplete event.
    """
    try:
        data = json.loads(raw_body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidWebhookPayloadException(f"body is not JSON: {e}") from e
    try:
        return webhook_payload_adapter.validate_python(data)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(p) for p in first["loc"])
        raise InvalidWebhookPayloadException(f"{location}: {first['msg']}") from e


class WebhookProcessor:
    """Applies worker events to jobs, variants and media.

    Every handler is safe to apply twice: status changes are guarded
    compare-and-set writes and field updates are absolute values.
    """

    def __init__(
        self,
        state_store: MediaStateStore,
        transcription_trigger: TranscriptionTrigger | None = None,
    ) -> None:
        """Initialize the processor.

        Args:
            state_store: Record persistence.
            transcription_trigger: Coroutine function run in the background
                with the media id after audio extraction. None disables
                transcription.
        """
        self._store = state_store
        self._trigger = transcription_trigger
        self._logger = get_logger(__name__)

    async def process(self, payload: WebhookPayload) -> None:
        """Apply one event."""
        with LogContext(
            event=payload.event,
            job_id=payload.job_id,
            media_id=payload.video_id,
        ):
            self._logger.info("Processing webhook event")
            match payload:
                case JobStartedPayload():
                    await self._on_job_started(payload)
                case JobProgressPayload():
                    await self._on_job_progress(payload)
                case QualityCompletedPayload():
                    await self._on_quality_completed(payload)
                case JobCompletedPayload():
                    await self._on_job_completed(payload)
                case JobFailedPayload():
                    await self._on_job_failed(payload)
                case ThumbnailGeneratedPayload():
                    await self._on_thumbnail_generated(payload)
                case AudioExtractedPayload():
                    await self._on_audio_extracted(payload)

    async def _on_job_started(self, payload: JobStartedPayload) -> None:
        job = await self._store.get_job(payload.job_id)
        if job is None:
            self._logger.warning("Unknown job; ignoring event")
            return

        data = payload.data
        await self._store.transition_job(
            job.id,
            JobStatus.PROCESSING,
            _ACTIVE_JOB_STATUSES,
            started_at=job.started_at or datetime.now(UTC),
        )

        fields: dict[str, Any] = {
            "source_metadata": SourceMetadata(
                codec=data.codec,
                bitrate=data.bitrate,
                fps=data.fps,
            ),
        }
        if data.source_width is not None:
            fields["source_width"] = data.source_width
        if data.source_height is not None:
            fields["source_height"] = data.source_height
        if data.duration is not None:
            fields["duration"] = round(data.duration)
        await self._store.update_media(job.media_id, **fields)
        await self._store.transition_media(
            job.media_id,
            MediaStatus.ENCODING,
            [MediaStatus.PENDING, MediaStatus.UPLOADING, MediaStatus.ENCODING],
        )

    async def _on_job_progress(self, payload: JobProgressPayload) -> None:
        job = await self._store.get_job(payload.job_id)
        if job is None:
            self._logger.warning("Unknown job; ignoring event")
            return

        await self._store.transition_job(
            job.id,
            JobStatus.PROCESSING,
            _ACTIVE_JOB_STATUSES,
            progress=payload.data.progress,
            progress_message=payload.data.message,
            started_at=job.started_at or datetime.now(UTC),
        )

    async def _on_quality_completed(self, payload: QualityCompletedPayload) -> None:
        data = payload.data
        variant = await self._store.get_variant(payload.video_id, data.quality)
        if variant is None:
            self._logger.warning(
                "Unknown variant; ignoring event",
                extra={"quality": data.quality.value},
            )
            return

        fields: dict[str, Any] = {
            "status": VariantStatus.READY,
            "width": data.width,
            "height": data.height,
            "path": data.r2_path,
            "completed_at": variant.completed_at or datetime.now(UTC),
        }
        if data.bitrate is not None:
            fields["bitrate"] = data.bitrate
        if data.file_size is not None:
            fields["file_size"] = data.file_size
        await self._store.update_variant(variant.id, **fields)

    async def _on_job_completed(self, payload: JobCompletedPayload) -> None:
        job = await self._store.get_job(payload.job_id)
        if job is None:
            self._logger.warning("Unknown job; ignoring event")
            return

        data = payload.data
        await self._store.transition_job(
            job.id,
            JobStatus.COMPLETED,
            (*_ACTIVE_JOB_STATUSES, JobStatus.COMPLETED),
            progress=100,
            completed_at=job.completed_at or datetime.now(UTC),
        )

        for completed in data.qualities:
            variant = await self._store.get_variant(job.media_id, completed.quality)
            if variant is None:
                continue
            fields: dict[str, Any] = {
                "status": VariantStatus.READY,
                "path": completed.r2_path,
                "completed_at": variant.completed_at or datetime.now(UTC),
            }
            if completed.file_size is not None:
                fields["file_size"] = completed.file_size
            await self._store.update_variant(variant.id, **fields)

        if data.duration is not None:
            await self._store.update_media(job.media_id, duration=round(data.duration))
        # During transcription/indexing the AI stage settles to ready itself
        await self._store.transition_media(
            job.media_id,
            MediaStatus.READY,
            [MediaStatus.UPLOADING, MediaStatus.ENCODING],
            last_error=None,
        )

    async def _on_job_failed(self, payload: JobFailedPayload) -> None:
        job = await self._store.get_job(payload.job_id)
        if job is None:
            self._logger.warning("Unknown job; ignoring event")
            return

        data = payload.data
        await self._store.transition_job(
            job.id,
            JobStatus.FAILED,
            _ACTIVE_JOB_STATUSES,
            error_code=data.error_code,
            error_message=data.error_message,
            error_details=data.error_details,
            completed_at=datetime.now(UTC),
        )
        current = await self._store.get_job(job.id)
        if current is None or current.status != JobStatus.FAILED:
            self._logger.info(
                "Job is no longer active; failure not applied to media",
                extra={"status": current.status.value if current else None},
            )
            return

        if data.quality is not None:
            variant = await self._store.get_variant(job.media_id, data.quality)
            if variant is not None and variant.status != VariantStatus.READY:
                await self._store.update_variant(variant.id, status=VariantStatus.ERROR)

        self._logger.error(
            "Encoding job failed",
            extra={"error_code": data.error_code, "error": data.error_message},
        )
        await self._store.transition_media(
            job.media_id,
            MediaStatus.ERROR,
            [s for s in MediaStatus if s != MediaStatus.ERROR],
            last_error=data.error_message,
        )

    async def _on_thumbnail_generated(self, payload: ThumbnailGeneratedPayload) -> None:
        media = await self._store.get_media(payload.video_id)
        if media is None:
            self._logger.warning("Unknown media; ignoring event")
            return

        thumbnail_job = await self._store.get_latest_job(media.id, JobType.THUMBNAIL)
        if thumbnail_job is not None:
            await self._store.transition_job(
                thumbnail_job.id,
                JobStatus.COMPLETED,
                (*_ACTIVE_JOB_STATUSES, JobStatus.COMPLETED),
                progress=100,
                completed_at=thumbnail_job.completed_at or datetime.now(UTC),
            )
        await self._store.update_media(media.id, thumbnail_path=payload.data.r2_path)

    async def _on_audio_extracted(self, payload: AudioExtractedPayload) -> None:
        media = await self._store.get_media(payload.video_id)
        if media is None:
            self._logger.warning("Unknown media; ignoring event")
            return

        await self._store.update_media(media.id, audio_path=payload.data.output_path)
        if self._trigger is None:
            self._logger.info("Transcription not configured; audio stored only")
            return

        background.spawn(self._trigger(media.id), name=f"transcribe:{media.id}")
        self._logger.info("Transcription scheduled")
