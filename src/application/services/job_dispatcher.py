"""Upload confirmation and encoding job dispatch."""

import asyncio
import socket
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from uuid import uuid4

from pydantic import ValidationError

from src.application.dtos.encoding import (
    ConfirmUploadRequest,
    CreateEncodingJobsResult,
    CreateUploadRequest,
    CreateUploadResponse,
    EncodingOptions,
    EncodingProgress,
    VariantProgress,
)
from src.application.services.media_store import MediaStateStore
from src.commons.infrastructure.blob.base import BlobStorageBase
from src.commons.infrastructure.queue.base import QueuePublisherBase, QueuePublishError
from src.commons.settings.models import (
    BlobStorageSettings,
    EncodingSettings,
    QueueSettings,
)
from src.commons.telemetry import get_logger
from src.domain.exceptions import (
    DispatchValidationException,
    EncodingJobNotFoundException,
    JobRetryException,
    MediaNotFoundException,
    MediaStateException,
    QueuePublishException,
)
from src.domain.models.dispatch import (
    AudioRequest,
    CallbackDescriptor,
    DispatchMetadata,
    EncodingJobMessage,
    OutputLocation,
    QualitySpec,
    SourceLocation,
    ThumbnailRequest,
    is_public_address,
    webhook_hostname,
)
from src.domain.models.encoding import (
    QUALITY_LADDER,
    EncodingJob,
    JobStatus,
    JobType,
    MediaVariant,
    QualityConfig,
    VariantStatus,
    VideoQuality,
    quality_config,
)
from src.domain.models.media import Media, MediaStatus
from src.domain.value_objects.storage_paths import MediaPaths

HostResolver = Callable[[str], Awaitable[list[str]]]


async def resolve_host(hostname: str) -> list[str]:
    """Resolve a hostname to its IP addresses without blocking the loop."""
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(hostname, 443, type=socket.SOCK_STREAM)
    return sorted({str(info[4][0]) for info in infos})


def determine_qualities(source_width: int, source_height: int) -> list[VideoQuality]:
    """Pick the ladder tiers worth encoding for a source resolution.

    A tier is dropped only when the source is smaller in both dimensions.
    The lowest tier is always kept.

    Args:
        source_width: Source width in pixels.
        source_height: Source height in pixels.

    Returns:
        Selected tiers, highest first.
    """
    selected = [
        config.quality
        for config in QUALITY_LADDER
        if not (source_width < config.width and source_height < config.height)
    ]
    floor = QUALITY_LADDER[-1].quality
    if floor not in selected:
        selected.append(floor)
    return selected


def select_qualities(
    determined: list[VideoQuality],
    requested: list[VideoQuality] | None,
) -> list[VideoQuality]:
    """Intersect eligible tiers with the caller's choice.

    An empty intersection falls back to the lowest eligible tier.
    """
    if not requested:
        return list(determined)
    wanted = set(requested)
    selected = [q for q in determined if q in wanted]
    return selected or [determined[-1]]


class EncodingJobDispatcher:
    """Creates variant and job rows and publishes work to the encoding queue.

    Publishing is a single attempt. A failed publish marks the job failed
    and raises; retrying is an explicit operator action bounded by the
    job's ``max_attempts``.
    """

    def __init__(
        self,
        state_store: MediaStateStore,
        queue: QueuePublisherBase,
        blob_storage: BlobStorageBase,
        encoding_settings: EncodingSettings,
        queue_settings: QueueSettings,
        blob_settings: BlobStorageSettings,
        resolver: HostResolver = resolve_host,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            state_store: Record persistence.
            queue: Encoding queue publisher.
            blob_storage: Object store, used for upload URLs.
            encoding_settings: Webhook and attempt configuration.
            queue_settings: Subject to publish on.
            blob_settings: Bucket names and presign expiry.
            resolver: Async hostname resolver for webhook URL checks.
        """
        self._store = state_store
        self._queue = queue
        self._blob = blob_storage
        self._settings = encoding_settings
        self._subject = queue_settings.subject
        self._bucket = blob_settings.buckets.media
        self._presigned_expiry = blob_settings.presigned_url_expiry_seconds
        self._resolve = resolver
        self._logger = get_logger(__name__)

    # =========================================================================
    # Upload
    # =========================================================================

    async def create_upload(self, request: CreateUploadRequest) -> CreateUploadResponse:
        """Create a media in ``uploading`` and presign its raw upload path."""
        filename = request.filename
        media_id = str(uuid4())
        media = Media(
            id=media_id,
            user_id=request.user_id,
            module_id=request.module_id,
            lesson_id=request.lesson_id,
            title=request.title,
            description=request.description,
            filename=filename,
            mime_type=request.mime_type,
            file_size=request.file_size,
            source_width=request.source_width,
            source_height=request.source_height,
            raw_path=MediaPaths(media_id=media_id).raw(filename),
            status=MediaStatus.UPLOADING,
        )
        await self._store.save_media(media)

        upload_url = await self._blob.generate_presigned_url(
            self._bucket,
            media.raw_path,
            expiry_seconds=self._presigned_expiry,
            method="PUT",
        )
        return CreateUploadResponse(
            media_id=media.id,
            upload_url=upload_url,
            raw_path=media.raw_path,
            expires_in_seconds=self._presigned_expiry,
        )

    async def confirm_upload(
        self,
        media_id: str,
        request: ConfirmUploadRequest | None = None,
    ) -> CreateEncodingJobsResult:
        """Move an uploaded media to ``encoding`` and dispatch its jobs.

        Raises:
            MediaNotFoundException: If the media does not exist.
            MediaStateException: If the media is not ``uploading``.
        """
        request = request or ConfirmUploadRequest()
        media = await self._require_media(media_id)

        extra: dict[str, int] = {}
        if request.file_size is not None:
            extra["file_size"] = request.file_size
        moved = await self._store.transition_media(
            media_id,
            MediaStatus.ENCODING,
            [MediaStatus.UPLOADING],
            **extra,
        )
        if not moved:
            current = await self._require_media(media_id)
            raise MediaStateException(media_id, current.status, [MediaStatus.UPLOADING])

        return await self.create_encoding_jobs(
            media,
            media.source_width,
            media.source_height,
            EncodingOptions(qualities=request.qualities, use_ai=request.use_ai),
        )

    # =========================================================================
    # Dispatch
    # =========================================================================

    async def create_encoding_jobs(
        self,
        media: Media,
        source_width: int | None = None,
        source_height: int | None = None,
        options: EncodingOptions | None = None,
    ) -> CreateEncodingJobsResult:
        """Create variant and job rows, then publish one dispatch message.

        Args:
            media: The media to encode.
            source_width: Source width; defaults to the configured width.
            source_height: Source height; defaults to the configured height.
            options: Tier selection and AI toggle.

        Returns:
            Job ids, queue message id and the selected/skipped tiers.

        Raises:
            DispatchValidationException: If the message fails validation.
            QueuePublishException: If the queue does not acknowledge.
        """
        options = options or EncodingOptions()
        width = source_width or self._settings.default_source_width
        height = source_height or self._settings.default_source_height

        eligible = determine_qualities(width, height)
        selected = select_qualities(eligible, options.qualities)
        skipped = [c.quality for c in QUALITY_LADDER if c.quality not in selected]
        await self._create_variants(media.id, selected)

        job = EncodingJob(
            media_id=media.id,
            job_type=JobType.ENCODE,
            extract_audio=options.use_ai,
            max_attempts=self._settings.max_attempts,
        )
        thumbnail_job = EncodingJob(
            media_id=media.id,
            job_type=JobType.THUMBNAIL,
            max_attempts=self._settings.max_attempts,
        )
        await self._store.save_job(job)
        await self._store.save_job(thumbnail_job)

        self._logger.info(
            "Dispatching encoding job",
            extra={
                "media_id": media.id,
                "job_id": job.id,
                "source": f"{width}x{height}",
                "qualities": [q.value for q in selected],
                "use_ai": options.use_ai,
            },
        )
        message_id = await self._publish(
            job,
            media,
            [quality_config(q) for q in selected],
            thumbnail_job=thumbnail_job,
        )
        return CreateEncodingJobsResult(
            job_id=job.id,
            thumbnail_job_id=thumbnail_job.id,
            message_id=message_id,
            qualities=selected,
            skipped_qualities=skipped,
            attempt_number=job.attempt_number,
        )

    async def retry_failed_job(self, job_id: str) -> CreateEncodingJobsResult:
        """Re-dispatch a failed job under the same job id.

        Only variants left in ``error`` are reset; the message carries every
        variant that is not ``ready`` or ``skipped``. No rows are created.

        Raises:
            EncodingJobNotFoundException: If the job does not exist.
            JobRetryException: If the job is not failed or has no attempts left.
        """
        job = await self._store.get_job(job_id)
        if job is None:
            raise EncodingJobNotFoundException(job_id)
        if not job.can_retry:
            raise JobRetryException(
                job.id, job.status, job.attempt_number, job.max_attempts
            )
        media = await self._require_media(job.media_id)

        variants = await self._store.get_variants(media.id)
        remaining = [
            quality_config(v.quality)
            for v in variants
            if v.status not in (VariantStatus.READY, VariantStatus.SKIPPED)
        ]
        if not remaining:
            raise JobRetryException(
                job.id,
                job.status,
                job.attempt_number,
                job.max_attempts,
                reason="every variant is already ready",
            )

        attempt = job.attempt_number + 1
        reset = await self._store.transition_job(
            job.id,
            JobStatus.PENDING,
            [JobStatus.FAILED],
            attempt_number=attempt,
            progress=0,
            progress_message=None,
            error_code=None,
            error_message=None,
            error_details=None,
            completed_at=None,
        )
        if not reset:
            # Another retry won the race
            current = await self._store.get_job(job.id) or job
            raise JobRetryException(
                job.id, current.status, current.attempt_number, current.max_attempts
            )

        await self._store.update_variants_with_status(
            media.id,
            [VariantStatus.ERROR],
            status=VariantStatus.PENDING,
            completed_at=None,
        )
        await self._store.transition_media(
            media.id,
            MediaStatus.ENCODING,
            [MediaStatus.ERROR, MediaStatus.ENCODING],
            last_error=None,
        )

        thumbnail_job = await self._store.get_latest_job(media.id, JobType.THUMBNAIL)
        if thumbnail_job is not None and thumbnail_job.status == JobStatus.COMPLETED:
            thumbnail_job = None
        elif thumbnail_job is not None:
            await self._store.transition_job(
                thumbnail_job.id,
                JobStatus.PENDING,
                [JobStatus.PENDING, JobStatus.QUEUED, JobStatus.FAILED],
                error_code=None,
                error_message=None,
                completed_at=None,
            )

        retried = job.model_copy(
            update={"attempt_number": attempt, "status": JobStatus.PENDING}
        )
        self._logger.info(
            "Retrying encoding job",
            extra={
                "job_id": job.id,
                "media_id": media.id,
                "attempt": attempt,
                "max_attempts": job.max_attempts,
                "qualities": [c.quality.value for c in remaining],
            },
        )
        message_id = await self._publish(
            retried,
            media,
            remaining,
            thumbnail_job=thumbnail_job,
        )
        return CreateEncodingJobsResult(
            job_id=job.id,
            thumbnail_job_id=thumbnail_job.id if thumbnail_job else None,
            message_id=message_id,
            qualities=[c.quality for c in remaining],
            skipped_qualities=[
                v.quality for v in variants if v.status == VariantStatus.SKIPPED
            ],
            attempt_number=attempt,
        )

    # =========================================================================
    # Queries and cancellation
    # =========================================================================

    async def get_jobs_for_media(self, media_id: str) -> list[EncodingJob]:
        """List a media's jobs, newest first."""
        await self._require_media(media_id)
        return await self._store.get_jobs_for_media(media_id)

    async def get_variants_for_media(self, media_id: str) -> list[MediaVariant]:
        """List a media's variants in ladder order."""
        await self._require_media(media_id)
        return await self._store.get_variants(media_id)

    async def get_encoding_progress(self, media_id: str) -> EncodingProgress:
        """Percentage of non-skipped variants that are ready."""
        variants = await self.get_variants_for_media(media_id)
        skipped = sum(1 for v in variants if v.status == VariantStatus.SKIPPED)
        ready = sum(1 for v in variants if v.status == VariantStatus.READY)
        active = len(variants) - skipped

        if not variants:
            progress = 0
        elif active == 0:
            progress = 100
        else:
            progress = round(100 * ready / active)

        return EncodingProgress(
            media_id=media_id,
            progress=progress,
            ready=ready,
            total=len(variants),
            skipped=skipped,
            variants=[
                VariantProgress(quality=v.quality, status=v.status) for v in variants
            ],
        )

    async def cancel_job(self, job_id: str) -> EncodingJob:
        """Cancel a job that has not reached a terminal status.

        Cancelling a finished job leaves it unchanged.

        Raises:
            EncodingJobNotFoundException: If the job does not exist.
        """
        job = await self._store.get_job(job_id)
        if job is None:
            raise EncodingJobNotFoundException(job_id)

        cancelled = await self._store.transition_job(
            job_id,
            JobStatus.CANCELLED,
            [JobStatus.PENDING, JobStatus.QUEUED, JobStatus.PROCESSING],
            completed_at=datetime.now(UTC),
        )
        if cancelled:
            self._logger.info(
                "Encoding job cancelled",
                extra={"job_id": job_id, "media_id": job.media_id},
            )
        return await self._store.get_job(job_id) or job

    # =========================================================================
    # Internals
    # =========================================================================

    async def _require_media(self, media_id: str) -> Media:
        media = await self._store.get_media(media_id)
        if media is None:
            raise MediaNotFoundException(media_id)
        return media

    async def _create_variants(
        self,
        media_id: str,
        selected: list[VideoQuality],
    ) -> None:
        """Write one row per tier; existing rows are re-labelled, never added to."""
        existing = await self._store.get_variants(media_id)
        if not existing:
            await self._store.insert_variants(
                [
                    MediaVariant.for_tier(
                        media_id,
                        config,
                        VariantStatus.PENDING
                        if config.quality in selected
                        else VariantStatus.SKIPPED,
                    )
                    for config in QUALITY_LADDER
                ]
            )
            return

        self._logger.warning(
            "Variants already exist; reusing rows",
            extra={"media_id": media_id, "count": len(existing)},
        )
        for variant in existing:
            if variant.status == VariantStatus.READY:
                continue
            status = (
                VariantStatus.PENDING
                if variant.quality in selected
                else VariantStatus.SKIPPED
            )
            await self._store.update_variant(variant.id, status=status)

    async def _build_message(
        self,
        job: EncodingJob,
        media: Media,
        qualities: list[QualityConfig],
        include_thumbnail: bool,
    ) -> EncodingJobMessage:
        """Assemble and validate the dispatch message.

        Raises:
            DispatchValidationException: On any path, URL or secret violation.
        """
        paths = MediaPaths(media_id=media.id)
        try:
            message = EncodingJobMessage(
                job_id=job.id,
                video_id=media.id,
                source=SourceLocation(
                    bucket=self._bucket,
                    path=media.raw_path,
                    filename=media.filename,
                ),
                output=OutputLocation(
                    bucket=self._bucket, base_path=paths.encoded_base
                ),
                qualities=[QualitySpec(**c.model_dump()) for c in qualities],
                thumbnail=ThumbnailRequest(
                    enabled=include_thumbnail,
                    timestamp_percent=self._settings.thumbnail_timestamp_percent,
                    path=paths.thumbnail,
                ),
                audio_for_stt=AudioRequest(enabled=job.extract_audio),
                callback=CallbackDescriptor(
                    webhook_url=self._settings.webhook_url,
                    webhook_secret=self._settings.webhook_secret,
                ),
                metadata=DispatchMetadata(
                    user_id=media.user_id,
                    title=media.title,
                    created_at=media.created_at.isoformat(),
                ),
            )
        except ValidationError as e:
            reasons = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in e.errors()
            )
            raise DispatchValidationException(job.id, reasons) from e

        await self._check_webhook_resolves(job.id, message.callback.webhook_url)
        return message

    async def _check_webhook_resolves(self, job_id: str, url: str) -> None:
        host = webhook_hostname(url)
        try:
            addresses = await self._resolve(host)
        except OSError as e:
            raise DispatchValidationException(
                job_id, f"webhook host {host!r} does not resolve: {e}"
            ) from e
        if not addresses:
            raise DispatchValidationException(
                job_id, f"webhook host {host!r} does not resolve"
            )
        private = [a for a in addresses if not is_public_address(a)]
        if private:
            raise DispatchValidationException(
                job_id,
                f"webhook host {host!r} resolves to non-public address {private[0]}",
            )

    async def _publish(
        self,
        job: EncodingJob,
        media: Media,
        qualities: list[QualityConfig],
        thumbnail_job: EncodingJob | None,
    ) -> str:
        """Validate, publish and record the outcome on the job rows."""
        related = [job.id] + ([thumbnail_job.id] if thumbnail_job else [])
        try:
            message = await self._build_message(
                job, media, qualities, include_thumbnail=thumbnail_job is not None
            )
            result = await self._queue.publish(
                self._subject,
                message.to_wire(),
                headers={"videoId": media.id, "jobId": job.id},
                dedup_id=f"{job.id}:{job.attempt_number}",
            )
        except (DispatchValidationException, QueuePublishError) as e:
            reason = e.reason
            for related_id in related:
                await self._store.transition_job(
                    related_id,
                    JobStatus.FAILED,
                    [JobStatus.PENDING],
                    error_message=reason,
                    completed_at=datetime.now(UTC),
                )
            self._logger.error(
                "Encoding dispatch failed",
                extra={
                    "job_id": job.id,
                    "media_id": media.id,
                    "attempt": job.attempt_number,
                    "error": reason,
                },
            )
            if isinstance(e, QueuePublishError):
                raise QueuePublishException(job.id, reason) from e
            raise

        now = datetime.now(UTC)
        for related_id in related:
            await self._store.transition_job(
                related_id,
                JobStatus.QUEUED,
                [JobStatus.PENDING],
                external_job_id=result.message_id,
                queued_at=now,
            )
        self._logger.info(
            "Encoding job queued",
            extra={
                "job_id": job.id,
                "media_id": media.id,
                "message_id": result.message_id,
                "attempt": job.attempt_number,
                "duplicate": result.duplicate,
            },
        )
        return result.message_id
