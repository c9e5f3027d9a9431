"""Unit tests for transcript chunking."""

import pytest

from src.application.services.chunking import (
    chunk_transcript,
    estimate_tokens,
    get_chunk_stats,
)
from src.domain.models.transcript import Transcript, TranscriptSegment
from src.domain.value_objects.chunking_config import ChunkingConfig


def _transcript(texts: list[str], seconds: float = 5.0) -> Transcript:
    return Transcript(
        video_id="media-1",
        language="ar",
        detected_language="ar",
        segments=[
            TranscriptSegment(
                id=i,
                start=i * seconds,
                end=(i + 1) * seconds,
                text=text,
                confidence=0.8 if i % 2 else 1.0,
            )
            for i, text in enumerate(texts)
        ],
    )


class TestEstimateTokens:
    """Tests for the four-characters-per-token estimate."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [("", 0), ("a", 1), ("abcd", 1), ("abcde", 2), ("x" * 400, 100)],
    )
    def test_estimate(self, text, expected):
        assert estimate_tokens(text) == expected


class TestChunkTranscript:
    """Tests for chunk boundaries, overlap and tail merging."""

    def test_empty_transcript(self):
        assert chunk_transcript(_transcript([]), "media-1", None) == []

    def test_short_transcript_is_one_chunk(self):
        chunks = chunk_transcript(_transcript(["hello", "world"]), "media-1", "mod-1")

        assert len(chunks) == 1
        chunk = chunks[0]
        assert chunk.content == "hello world"
        assert chunk.module_id == "mod-1"
        assert chunk.chunk_index == 0
        assert (chunk.start_time, chunk.end_time) == (0.0, 10.0)
        assert chunk.metadata.segment_ids == [0, 1]
        assert chunk.metadata.avg_confidence == pytest.approx(0.9)

    def test_neighbouring_chunks_share_one_segment(self):
        # 10 tokens per segment, 30 token budget
        texts = [f"{i:02d}" + "x" * 38 for i in range(10)]
        config = ChunkingConfig(target_tokens=30, min_tokens=0)

        chunks = chunk_transcript(_transcript(texts), "media-1", None, config)

        assert len(chunks) > 1
        for previous, current in zip(chunks, chunks[1:], strict=False):
            assert previous.metadata.segment_ids[-1] == current.metadata.segment_ids[0]
        assert [c.chunk_index for c in chunks] == list(range(len(chunks)))

    def test_chunks_respect_target(self):
        texts = ["y" * 39] * 12
        config = ChunkingConfig(target_tokens=30, min_tokens=0)

        chunks = chunk_transcript(_transcript(texts), "media-1", None, config)

        assert all(c.token_count <= 30 for c in chunks)

    def test_every_segment_is_covered(self):
        texts = [f"segment {i} " + "z" * (i * 7) for i in range(15)]
        config = ChunkingConfig(target_tokens=25, min_tokens=5)

        chunks = chunk_transcript(_transcript(texts), "media-1", None, config)

        covered = {sid for c in chunks for sid in c.metadata.segment_ids}
        assert covered == set(range(15))

    def test_small_tail_merges_into_previous(self):
        # Two full segments then a tiny one
        texts = ["a" * 80, "b" * 80, "c" * 4]
        config = ChunkingConfig(target_tokens=30, min_tokens=25)

        chunks = chunk_transcript(_transcript(texts), "media-1", None, config)

        last = chunks[-1]
        assert last.content.endswith("c" * 4)
        assert last.end_time == 15.0
        assert last.metadata.segment_ids[-1] == 2
        assert len(set(last.metadata.segment_ids)) == len(last.metadata.segment_ids)

    def test_oversized_segment_is_never_split(self):
        chunks = chunk_transcript(
            _transcript(["w" * 4000]),
            "media-1",
            None,
            ChunkingConfig(target_tokens=100, min_tokens=10),
        )

        assert len(chunks) == 1
        assert chunks[0].token_count == 1000

    def test_language_comes_from_detection(self):
        transcript = _transcript(["hi"]).model_copy(
            update={"detected_language": "en"}
        )

        chunks = chunk_transcript(transcript, "media-1", None)

        assert chunks[0].metadata.language == "en"


class TestChunkStats:
    """Tests for chunk set summaries."""

    def test_empty(self):
        stats = get_chunk_stats([])

        assert stats.total_chunks == 0
        assert stats.avg_confidence == 0.0

    def test_summary(self):
        config = ChunkingConfig(target_tokens=30, min_tokens=0)
        chunks = chunk_transcript(
            _transcript(["q" * 40] * 6), "media-1", None, config
        )

        stats = get_chunk_stats(chunks)

        assert stats.total_chunks == len(chunks)
        assert stats.total_tokens == sum(c.token_count for c in chunks)
        assert stats.total_duration_seconds == 30
