"""Unit tests for MediaStateStore."""

import asyncio

import pytest

from src.domain.models.encoding import (
    QUALITY_LADDER,
    EncodingJob,
    JobStatus,
    JobType,
    MediaVariant,
    VariantStatus,
    VideoQuality,
)
from src.domain.models.media import Media, MediaStatus


def _media(status: MediaStatus = MediaStatus.UPLOADING) -> Media:
    return Media(
        user_id="user-1",
        title="Lesson 1",
        filename="lesson.mp4",
        raw_path="videos/raw/x/lesson.mp4",
        status=status,
    )


@pytest.fixture
async def media(state_store):
    media = _media()
    await state_store.save_media(media)
    return media


class TestMediaTransitions:
    """Tests for compare-and-set media transitions."""

    async def test_round_trip(self, state_store, media):
        assert await state_store.get_media(media.id) == media

    async def test_transition_applies_from_allowed_state(self, state_store, media):
        applied = await state_store.transition_media(
            media.id, MediaStatus.ENCODING, [MediaStatus.UPLOADING], file_size=42
        )

        loaded = await state_store.get_media(media.id)
        assert applied is True
        assert loaded.status == MediaStatus.ENCODING
        assert loaded.file_size == 42

    async def test_transition_guard_miss_changes_nothing(self, state_store, media):
        applied = await state_store.transition_media(
            media.id, MediaStatus.READY, [MediaStatus.ENCODING], file_size=42
        )

        loaded = await state_store.get_media(media.id)
        assert applied is False
        assert loaded.status == MediaStatus.UPLOADING
        assert loaded.file_size is None

    async def test_concurrent_transitions_have_one_winner(self, state_store, media):
        results = await asyncio.gather(
            *(
                state_store.transition_media(
                    media.id, MediaStatus.ENCODING, [MediaStatus.UPLOADING]
                )
                for _ in range(5)
            )
        )

        assert results.count(True) == 1

    async def test_unknown_media(self, state_store):
        assert await state_store.get_media("missing") is None
        assert not await state_store.transition_media(
            "missing", MediaStatus.READY, [MediaStatus.ENCODING]
        )


class TestSettleAiStage:
    """Tests for the encoding-aware end of transcription/indexing."""

    async def _job(self, state_store, media_id, status):
        job = EncodingJob(media_id=media_id, job_type=JobType.ENCODE, status=status)
        await state_store.save_job(job)
        return job

    async def test_ready_when_encode_job_completed(self, state_store):
        media = _media(MediaStatus.INDEXING)
        await state_store.save_media(media)
        await self._job(state_store, media.id, JobStatus.COMPLETED)

        assert await state_store.settle_ai_stage(media.id) == MediaStatus.READY

    async def test_encoding_when_encode_job_running(self, state_store):
        media = _media(MediaStatus.TRANSCRIBING)
        await state_store.save_media(media)
        await self._job(state_store, media.id, JobStatus.PROCESSING)

        assert await state_store.settle_ai_stage(media.id) == MediaStatus.ENCODING
        loaded = await state_store.get_media(media.id)
        assert loaded.status == MediaStatus.ENCODING

    async def test_ready_without_encode_job(self, state_store):
        media = _media(MediaStatus.INDEXING)
        await state_store.save_media(media)

        assert await state_store.settle_ai_stage(media.id) == MediaStatus.READY

    async def test_noop_outside_ai_stage(self, state_store):
        media = _media(MediaStatus.ERROR)
        await state_store.save_media(media)

        assert await state_store.settle_ai_stage(media.id) is None
        loaded = await state_store.get_media(media.id)
        assert loaded.status == MediaStatus.ERROR


class TestVariantsAndJobs:
    """Tests for variant and job persistence."""

    async def test_variants_in_ladder_order(self, state_store, media):
        variants = [
            MediaVariant.for_tier(media.id, config, VariantStatus.PENDING)
            for config in reversed(QUALITY_LADDER)
        ]
        await state_store.insert_variants(variants)

        loaded = await state_store.get_variants(media.id)

        assert [v.quality for v in loaded] == [c.quality for c in QUALITY_LADDER]

    async def test_update_variants_with_status(self, state_store, media):
        await state_store.insert_variants(
            [
                MediaVariant.for_tier(media.id, QUALITY_LADDER[0], VariantStatus.ERROR),
                MediaVariant.for_tier(media.id, QUALITY_LADDER[1], VariantStatus.READY),
            ]
        )

        count = await state_store.update_variants_with_status(
            media.id, [VariantStatus.ERROR], status=VariantStatus.PENDING
        )

        assert count == 1
        top = await state_store.get_variant(media.id, VideoQuality.Q1080P)
        assert top.status == VariantStatus.PENDING

    async def test_latest_job_by_type(self, state_store, media):
        encode = EncodingJob(media_id=media.id, job_type=JobType.ENCODE)
        thumbnail = EncodingJob(media_id=media.id, job_type=JobType.THUMBNAIL)
        await state_store.save_job(encode)
        await state_store.save_job(thumbnail)

        latest = await state_store.get_latest_job(media.id, JobType.THUMBNAIL)

        assert latest.id == thumbnail.id
        assert len(await state_store.get_jobs_for_media(media.id)) == 2

    async def test_transition_job_guard(self, state_store, media):
        job = EncodingJob(media_id=media.id, status=JobStatus.COMPLETED)
        await state_store.save_job(job)

        applied = await state_store.transition_job(
            job.id, JobStatus.FAILED, [JobStatus.PROCESSING]
        )

        assert applied is False
        assert (await state_store.get_job(job.id)).status == JobStatus.COMPLETED
