"""Unit tests for EncodingJobDispatcher."""

from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError

from src.application.dtos.encoding import (
    ConfirmUploadRequest,
    CreateUploadRequest,
    EncodingOptions,
)
from src.application.services.job_dispatcher import (
    EncodingJobDispatcher,
    determine_qualities,
    select_qualities,
)
from src.commons.infrastructure.queue.base import QueuePublishError
from src.domain.exceptions import (
    DispatchValidationException,
    EncodingJobNotFoundException,
    JobRetryException,
    MediaNotFoundException,
    MediaStateException,
    QueuePublishException,
)
from src.domain.models.encoding import JobStatus, JobType, VariantStatus, VideoQuality
from src.domain.models.media import Media, MediaStatus

Q = VideoQuality

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def upload_request():
    return CreateUploadRequest(
        user_id="user-1",
        title="Intro to Python",
        filename="lesson.mp4",
        module_id="module-1",
    )


@pytest.fixture
async def uploaded(dispatcher, upload_request):
    """A media that finished uploading."""
    response = await dispatcher.create_upload(upload_request)
    return response.media_id


async def _encoding_media(state_store, raw_path="videos/raw/m/lesson.mp4") -> Media:
    media = Media(
        user_id="user-1",
        title="Lesson",
        filename="lesson.mp4",
        raw_path=raw_path,
        status=MediaStatus.ENCODING,
    )
    await state_store.save_media(media)
    return media


def _dispatcher_with(settings, state_store, queue, blob_storage, resolver):
    return EncodingJobDispatcher(
        state_store,
        queue,
        blob_storage,
        settings.encoding,
        settings.queue,
        settings.blob_storage,
        resolver=resolver,
    )


# =============================================================================
# Quality ladder
# =============================================================================


class TestQualitySelection:
    """Tests for ladder tier selection."""

    def test_full_hd_source_keeps_every_tier(self):
        assert determine_qualities(1920, 1080) == [
            Q.Q1080P,
            Q.Q720P,
            Q.Q480P,
            Q.Q360P,
            Q.Q240P,
        ]

    def test_720p_source_skips_higher_tiers(self):
        assert determine_qualities(1280, 720) == [Q.Q720P, Q.Q480P, Q.Q360P, Q.Q240P]

    def test_tiny_source_keeps_lowest_tier(self):
        assert determine_qualities(320, 180) == [Q.Q240P]

    def test_tier_dropped_only_when_smaller_in_both_dimensions(self):
        # Portrait video: narrower than 1080p but taller
        assert Q.Q1080P in determine_qualities(720, 1280)

    def test_select_intersects_with_request(self):
        determined = [Q.Q720P, Q.Q480P, Q.Q360P, Q.Q240P]

        assert select_qualities(determined, None) == determined
        assert select_qualities(determined, [Q.Q480P, Q.Q1080P]) == [Q.Q480P]

    def test_select_falls_back_to_lowest_eligible(self):
        assert select_qualities([Q.Q360P, Q.Q240P], [Q.Q1080P]) == [Q.Q240P]


# =============================================================================
# Upload and dispatch
# =============================================================================


class TestUpload:
    """Tests for create_upload and confirm_upload."""

    async def test_create_upload(self, dispatcher, state_store, upload_request):
        response = await dispatcher.create_upload(upload_request)

        media = await state_store.get_media(response.media_id)
        assert media.status == MediaStatus.UPLOADING
        assert media.raw_path == f"videos/raw/{media.id}/lesson.mp4"
        assert response.upload_url.startswith(f"memory://media/{media.raw_path}")
        assert "method=PUT" in response.upload_url

    async def test_create_upload_strips_directories(self, dispatcher, state_store):
        response = await dispatcher.create_upload(
            CreateUploadRequest(
                user_id="user-1", title="Lesson", filename="..\\..\\evil.mp4"
            )
        )

        media = await state_store.get_media(response.media_id)
        assert media.filename == "evil.mp4"

    @pytest.mark.parametrize(
        "filename", ["lecture..final.mp4", "..", "/", "a/..\\.."]
    )
    def test_unsafe_filename_rejected(self, filename):
        with pytest.raises(ValidationError, match="filename"):
            CreateUploadRequest(user_id="user-1", title="Lesson", filename=filename)

    async def test_confirm_dispatches_jobs(
        self, dispatcher, state_store, queue, uploaded
    ):
        result = await dispatcher.confirm_upload(
            uploaded, ConfirmUploadRequest(file_size=1024)
        )

        media = await state_store.get_media(uploaded)
        assert media.status == MediaStatus.ENCODING
        assert media.file_size == 1024
        assert result.qualities == determine_qualities(1920, 1080)
        assert result.attempt_number == 1

        jobs = await state_store.get_jobs_for_media(uploaded)
        assert {j.job_type for j in jobs} == {JobType.ENCODE, JobType.THUMBNAIL}
        assert all(j.status == JobStatus.QUEUED for j in jobs)
        assert all(j.external_job_id == result.message_id for j in jobs)

        assert len(queue.messages) == 1
        message = queue.messages[0]
        assert message.subject == "encoding.jobs"
        assert message.headers == {"videoId": uploaded, "jobId": result.job_id}
        payload = message.payload
        assert payload["jobId"] == result.job_id
        assert payload["videoId"] == uploaded
        assert payload["audioForStt"] == {"enabled": True}
        assert payload["output"]["basePath"] == f"videos/encoded/{uploaded}"
        assert payload["callback"]["webhookSecret"] == "s" * 32
        assert [q["quality"] for q in payload["qualities"]] == [
            q.value for q in result.qualities
        ]

    async def test_confirm_with_small_source_skips_tiers(
        self, dispatcher, state_store, uploaded
    ):
        await state_store.update_media(uploaded, source_width=1280, source_height=720)

        result = await dispatcher.confirm_upload(uploaded)

        variants = await state_store.get_variants(uploaded)
        assert len(variants) == 5
        assert result.skipped_qualities == [Q.Q1080P]
        statuses = {v.quality: v.status for v in variants}
        assert statuses[Q.Q1080P] == VariantStatus.SKIPPED
        assert statuses[Q.Q720P] == VariantStatus.PENDING

    async def test_confirm_without_ai(self, dispatcher, state_store, queue, uploaded):
        await dispatcher.confirm_upload(uploaded, ConfirmUploadRequest(use_ai=False))

        assert queue.messages[0].payload["audioForStt"] == {"enabled": False}

    async def test_confirm_twice_rejected(self, dispatcher, uploaded):
        await dispatcher.confirm_upload(uploaded)

        with pytest.raises(MediaStateException) as exc_info:
            await dispatcher.confirm_upload(uploaded)
        assert exc_info.value.status == MediaStatus.ENCODING

    async def test_confirm_unknown_media(self, dispatcher):
        with pytest.raises(MediaNotFoundException):
            await dispatcher.confirm_upload("missing")


class TestDispatchValidation:
    """Invalid messages fail the job and never reach the queue."""

    async def _assert_rejected(self, dispatcher, state_store, queue, media):
        with pytest.raises(DispatchValidationException):
            await dispatcher.create_encoding_jobs(media)

        assert queue.messages == []
        jobs = await state_store.get_jobs_for_media(media.id)
        assert jobs
        assert all(j.status == JobStatus.FAILED for j in jobs)
        assert all(j.error_message for j in jobs)

    async def test_path_traversal(self, dispatcher, state_store, queue):
        media = await _encoding_media(state_store, "videos/raw/../secrets/x.mp4")
        await self._assert_rejected(dispatcher, state_store, queue, media)

    async def test_absolute_path(self, dispatcher, state_store, queue):
        media = await _encoding_media(state_store, "/etc/passwd")
        await self._assert_rejected(dispatcher, state_store, queue, media)

    async def test_plain_http_webhook(
        self, settings, state_store, queue, blob_storage, resolver
    ):
        settings.encoding.webhook_url = "http://hooks.example.com/encoding/webhook"
        dispatcher = _dispatcher_with(
            settings, state_store, queue, blob_storage, resolver
        )
        media = await _encoding_media(state_store)
        await self._assert_rejected(dispatcher, state_store, queue, media)

    async def test_loopback_webhook(
        self, settings, state_store, queue, blob_storage, resolver
    ):
        settings.encoding.webhook_url = "https://127.0.0.1/encoding/webhook"
        dispatcher = _dispatcher_with(
            settings, state_store, queue, blob_storage, resolver
        )
        media = await _encoding_media(state_store)
        await self._assert_rejected(dispatcher, state_store, queue, media)

    async def test_webhook_resolving_to_private_address(
        self, settings, state_store, queue, blob_storage
    ):
        async def private(hostname):
            return ["10.0.0.7"]

        dispatcher = _dispatcher_with(
            settings, state_store, queue, blob_storage, private
        )
        media = await _encoding_media(state_store)
        await self._assert_rejected(dispatcher, state_store, queue, media)

    async def test_webhook_that_does_not_resolve(
        self, settings, state_store, queue, blob_storage
    ):
        async def unresolvable(hostname):
            raise OSError("Name or service not known")

        dispatcher = _dispatcher_with(
            settings, state_store, queue, blob_storage, unresolvable
        )
        media = await _encoding_media(state_store)
        await self._assert_rejected(dispatcher, state_store, queue, media)

    async def test_short_secret(
        self, settings, state_store, queue, blob_storage, resolver
    ):
        settings.encoding.webhook_secret = "too-short"
        dispatcher = _dispatcher_with(
            settings, state_store, queue, blob_storage, resolver
        )
        media = await _encoding_media(state_store)
        await self._assert_rejected(dispatcher, state_store, queue, media)


class TestPublishFailure:
    """Tests for a queue that does not acknowledge."""

    async def test_publish_failure_marks_jobs_failed(
        self, settings, state_store, blob_storage, resolver
    ):
        queue = AsyncMock()
        queue.publish.side_effect = QueuePublishError("encoding.jobs", "timeout")
        dispatcher = _dispatcher_with(
            settings, state_store, queue, blob_storage, resolver
        )
        media = await _encoding_media(state_store)

        with pytest.raises(QueuePublishException) as exc_info:
            await dispatcher.create_encoding_jobs(media)

        assert exc_info.value.reason == "timeout"
        queue.publish.assert_awaited_once()
        jobs = await state_store.get_jobs_for_media(media.id)
        assert all(j.status == JobStatus.FAILED for j in jobs)
        assert all(j.error_message == "timeout" for j in jobs)


# =============================================================================
# Retry, cancel and progress
# =============================================================================


class TestRetry:
    """Tests for in-place retries of failed jobs."""

    async def _fail(self, state_store, job_id):
        await state_store.transition_job(
            job_id,
            JobStatus.FAILED,
            [JobStatus.QUEUED, JobStatus.PROCESSING],
            error_message="ffmpeg crashed",
        )

    async def test_retry_reuses_job_and_bumps_attempt(
        self, dispatcher, state_store, queue, uploaded
    ):
        first = await dispatcher.confirm_upload(uploaded)
        top = await state_store.get_variant(uploaded, Q.Q1080P)
        await state_store.update_variant(top.id, status=VariantStatus.READY)
        broken = await state_store.get_variant(uploaded, Q.Q720P)
        await state_store.update_variant(broken.id, status=VariantStatus.ERROR)
        await self._fail(state_store, first.job_id)
        await state_store.transition_media(
            uploaded, MediaStatus.ERROR, [MediaStatus.ENCODING]
        )

        result = await dispatcher.retry_failed_job(first.job_id)

        assert result.job_id == first.job_id
        assert result.attempt_number == 2
        assert Q.Q1080P not in result.qualities
        assert Q.Q720P in result.qualities
        assert f"{first.job_id}:2" in queue._seen
        assert len(queue.messages) == 2

        job = await state_store.get_job(first.job_id)
        assert job.status == JobStatus.QUEUED
        assert job.error_message is None
        assert len(await state_store.get_jobs_for_media(uploaded)) == 2
        assert (await state_store.get_variant(uploaded, Q.Q720P)).status == (
            VariantStatus.PENDING
        )
        media = await state_store.get_media(uploaded)
        assert media.status == MediaStatus.ENCODING
        assert media.last_error is None

    async def test_retry_rejected_when_attempts_exhausted(
        self, dispatcher, state_store, uploaded
    ):
        first = await dispatcher.confirm_upload(uploaded)
        await self._fail(state_store, first.job_id)
        await state_store.update_job(first.job_id, attempt_number=3)

        with pytest.raises(JobRetryException) as exc_info:
            await dispatcher.retry_failed_job(first.job_id)

        assert "3/3" in exc_info.value.reason

    async def test_retry_rejected_when_not_failed(self, dispatcher, uploaded):
        first = await dispatcher.confirm_upload(uploaded)

        with pytest.raises(JobRetryException):
            await dispatcher.retry_failed_job(first.job_id)

    async def test_retry_unknown_job(self, dispatcher):
        with pytest.raises(EncodingJobNotFoundException):
            await dispatcher.retry_failed_job("missing")


class TestCancelAndProgress:
    """Tests for cancellation and progress reporting."""

    async def test_cancel_active_job(self, dispatcher, uploaded):
        first = await dispatcher.confirm_upload(uploaded)

        job = await dispatcher.cancel_job(first.job_id)

        assert job.status == JobStatus.CANCELLED
        assert job.completed_at is not None

    async def test_cancel_finished_job_is_noop(self, dispatcher, state_store, uploaded):
        first = await dispatcher.confirm_upload(uploaded)
        await state_store.transition_job(
            first.job_id, JobStatus.COMPLETED, [JobStatus.QUEUED]
        )

        job = await dispatcher.cancel_job(first.job_id)

        assert job.status == JobStatus.COMPLETED

    async def test_progress_ignores_skipped_variants(
        self, dispatcher, state_store, uploaded
    ):
        await state_store.update_media(uploaded, source_width=1280, source_height=720)
        await dispatcher.confirm_upload(uploaded)
        variant = await state_store.get_variant(uploaded, Q.Q720P)
        await state_store.update_variant(variant.id, status=VariantStatus.READY)

        progress = await dispatcher.get_encoding_progress(uploaded)

        assert progress.total == 5
        assert progress.skipped == 1
        assert progress.ready == 1
        assert progress.progress == 25

    async def test_progress_unknown_media(self, dispatcher):
        with pytest.raises(MediaNotFoundException):
            await dispatcher.get_encoding_progress("missing")


class TestEncodingOptions:
    """Tests for explicit tier selection."""

    async def test_requested_tiers_only(self, dispatcher, state_store):
        media = await _encoding_media(state_store)

        result = await dispatcher.create_encoding_jobs(
            media, 1920, 1080, EncodingOptions(qualities=[Q.Q480P], use_ai=False)
        )

        assert result.qualities == [Q.Q480P]
        assert len(result.skipped_qualities) == 4
