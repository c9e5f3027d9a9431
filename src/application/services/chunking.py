"""Splitting transcripts into token-budgeted chunks for embedding."""

import math
from dataclasses import dataclass
from statistics import fmean

from src.domain.models.chunk import ChunkMetadata, TranscriptChunk
from src.domain.models.transcript import Transcript, TranscriptSegment
from src.domain.value_objects.chunking_config import ChunkingConfig


@dataclass
class ChunkStats:
    """Summary figures for a chunk set."""

    total_chunks: int
    total_tokens: int
    avg_tokens_per_chunk: int
    avg_confidence: float
    total_duration_seconds: int


def estimate_tokens(text: str) -> int:
    """Estimate tokens at four characters each.

    Examples:
        >>> estimate_tokens("abcde")
        2
        >>> estimate_tokens("")
        0
    """
    return math.ceil(len(text) / 4)


def _dedupe(ids: list[int]) -> list[int]:
    return list(dict.fromkeys(ids))


def _joined(segments: list[TranscriptSegment]) -> str:
    return " ".join(s.text for s in segments)


def _build_chunk(
    segments: list[TranscriptSegment],
    media_id: str,
    module_id: str | None,
    chunk_index: int,
    language: str,
) -> TranscriptChunk:
    content = _joined(segments)
    return TranscriptChunk(
        media_id=media_id,
        module_id=module_id,
        chunk_index=chunk_index,
        content=content.strip(),
        token_count=estimate_tokens(content),
        start_time=segments[0].start,
        end_time=segments[-1].end,
        metadata=ChunkMetadata(
            segment_ids=_dedupe([s.id for s in segments]),
            avg_confidence=fmean(s.confidence for s in segments),
            language=language,
        ),
    )


def _merge_tail(
    previous: TranscriptChunk,
    tail: list[TranscriptSegment],
) -> TranscriptChunk:
    content = previous.content + " " + _joined(tail)
    return previous.model_copy(
        update={
            "content": content.strip(),
            "token_count": estimate_tokens(content),
            "end_time": tail[-1].end,
            "metadata": previous.metadata.model_copy(
                update={
                    "segment_ids": _dedupe(
                        [*previous.metadata.segment_ids, *(s.id for s in tail)]
                    ),
                    "avg_confidence": fmean(
                        [
                            previous.metadata.avg_confidence,
                            *(s.confidence for s in tail),
                        ]
                    ),
                }
            ),
        }
    )


def chunk_transcript(
    transcript: Transcript,
    media_id: str,
    module_id: str | None,
    config: ChunkingConfig | None = None,
) -> list[TranscriptChunk]:
    """Group consecutive segments into chunks.

    Segments are never split. When adding a segment would push the pending
    chunk past ``target_tokens``, the pending chunk is emitted and the next
    one starts with its last segment, so neighbouring chunks overlap by
    exactly one segment. A final chunk under ``min_tokens`` is folded into
    the previous chunk instead of standing alone.

    Args:
        transcript: Transcript to split.
        media_id: Owning media.
        module_id: Owning module, copied onto every chunk.
        config: Token budgets; defaults to 400 target and 100 minimum.

    Returns:
        Chunks in transcript order, indexed from 0.
    """
    config = config or ChunkingConfig()
    segments = transcript.segments
    if not segments:
        return []

    language = transcript.detected_language
    chunks: list[TranscriptChunk] = []
    pending: list[TranscriptSegment] = []
    pending_tokens = 0

    for segment in segments:
        segment_tokens = estimate_tokens(segment.text)
        if pending and pending_tokens + segment_tokens > config.target_tokens:
            chunks.append(
                _build_chunk(pending, media_id, module_id, len(chunks), language)
            )
            overlap = pending[-1]
            pending = [overlap]
            pending_tokens = estimate_tokens(overlap.text)

        pending.append(segment)
        pending_tokens += segment_tokens

    if chunks and pending_tokens < config.min_tokens:
        chunks[-1] = _merge_tail(chunks[-1], pending)
    else:
        chunks.append(_build_chunk(pending, media_id, module_id, len(chunks), language))

    return chunks


def get_chunk_stats(chunks: list[TranscriptChunk]) -> ChunkStats:
    """Summarize a chunk set for logging."""
    if not chunks:
        return ChunkStats(
            total_chunks=0,
            total_tokens=0,
            avg_tokens_per_chunk=0,
            avg_confidence=0.0,
            total_duration_seconds=0,
        )

    total_tokens = sum(c.token_count for c in chunks)
    return ChunkStats(
        total_chunks=len(chunks),
        total_tokens=total_tokens,
        avg_tokens_per_chunk=round(total_tokens / len(chunks)),
        avg_confidence=round(fmean(c.metadata.avg_confidence for c in chunks), 2),
        total_duration_seconds=round(chunks[-1].end_time - chunks[0].start_time),
    )
