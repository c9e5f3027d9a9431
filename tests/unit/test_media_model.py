"""Unit tests for Media, encoding and chunk models."""

import pytest
from pydantic import ValidationError

from src.domain.models.chunk import TranscriptChunk
from src.domain.models.encoding import (
    QUALITY_LADDER,
    EncodingJob,
    JobStatus,
    MediaVariant,
    VariantStatus,
    VideoQuality,
    ladder_index,
    quality_config,
)
from src.domain.models.media import Media, MediaStatus


class TestMedia:
    """Tests for the Media model."""

    @pytest.fixture
    def media(self) -> Media:
        return Media(
            user_id="user-1",
            title="Lesson",
            filename="lesson.mp4",
            raw_path="videos/raw/m/lesson.mp4",
        )

    def test_defaults(self, media):
        assert media.status == MediaStatus.PENDING
        assert len(media.id) == 36
        assert media.last_error is None
        assert media.created_at.tzinfo is not None

    @pytest.mark.parametrize(
        ("status", "failed"),
        [
            (MediaStatus.ERROR, True),
            (MediaStatus.FAILED_TRANSCRIPTION, True),
            (MediaStatus.FAILED_INDEXING, True),
            (MediaStatus.READY, False),
            (MediaStatus.ENCODING, False),
        ],
    )
    def test_is_failed(self, media, status, failed):
        assert media.transition_to(status).is_failed is failed

    def test_in_ai_stage(self, media):
        assert media.transition_to(MediaStatus.TRANSCRIBING).in_ai_stage
        assert media.transition_to(MediaStatus.INDEXING).in_ai_stage
        assert not media.transition_to(MediaStatus.READY).in_ai_stage

    def test_transition_keeps_error_only_for_failures(self, media):
        failed = media.transition_to(MediaStatus.ERROR, "ffmpeg crashed")
        recovered = failed.transition_to(MediaStatus.ENCODING, "ignored")

        assert failed.last_error == "ffmpeg crashed"
        assert recovered.last_error is None
        assert media.status == MediaStatus.PENDING
        assert recovered.updated_at >= media.updated_at

    def test_is_ready(self, media):
        assert media.transition_to(MediaStatus.READY).is_ready
        assert not media.is_ready


class TestQualityLadder:
    """Tests for the fixed rendition ladder."""

    def test_highest_first(self):
        heights = [c.height for c in QUALITY_LADDER]

        assert heights == sorted(heights, reverse=True)
        assert QUALITY_LADDER[-1].quality == VideoQuality.Q240P

    def test_lookups(self):
        assert quality_config(VideoQuality.Q720P).bitrate == 2500
        assert ladder_index("1080p") == 0
        assert ladder_index(VideoQuality.Q240P) == 4

    def test_variant_for_tier(self):
        variant = MediaVariant.for_tier(
            "m-1", quality_config(VideoQuality.Q480P), VariantStatus.SKIPPED
        )

        assert (variant.width, variant.height) == (854, 480)
        assert variant.audio_bitrate == 96
        assert variant.status == VariantStatus.SKIPPED


class TestEncodingJob:
    """Tests for job retry and terminal checks."""

    def test_can_retry_with_attempts_left(self):
        job = EncodingJob(media_id="m", status=JobStatus.FAILED, attempt_number=2)

        assert job.can_retry
        assert job.is_terminal

    def test_cannot_retry_when_exhausted(self):
        job = EncodingJob(media_id="m", status=JobStatus.FAILED, attempt_number=3)

        assert not job.can_retry

    def test_cannot_retry_running_job(self):
        job = EncodingJob(media_id="m", status=JobStatus.PROCESSING)

        assert not job.can_retry
        assert not job.is_terminal

    def test_progress_bounds(self):
        with pytest.raises(ValidationError):
            EncodingJob(media_id="m", progress=101)


class TestTranscriptChunk:
    """Tests for chunk helpers."""

    def test_duration_and_range(self):
        chunk = TranscriptChunk(
            media_id="m",
            chunk_index=0,
            content="x",
            token_count=1,
            start_time=65.5,
            end_time=130.0,
        )

        assert chunk.duration_seconds == 64.5
        assert chunk.format_time_range() == "01:05 - 02:10"
        assert chunk.metadata.language == "ar"

    def test_negative_index_rejected(self):
        with pytest.raises(ValidationError):
            TranscriptChunk(
                media_id="m",
                chunk_index=-1,
                content="x",
                token_count=1,
                start_time=0,
                end_time=1,
            )
