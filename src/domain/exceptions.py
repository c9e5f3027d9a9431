"""Domain exceptions for the media pipeline."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.domain.models.encoding import JobStatus
    from src.domain.models.media import MediaStatus


class DomainException(Exception):
    """Base exception for domain errors."""


class MediaNotFoundException(DomainException):
    """Raised when a requested media is not found."""

    def __init__(self, media_id: str) -> None:
        self.media_id = media_id
        super().__init__(f"Media not found: {media_id}")


class EncodingJobNotFoundException(DomainException):
    """Raised when a requested encoding job is not found."""

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(f"Encoding job not found: {job_id}")


class ChunkNotFoundException(DomainException):
    """Raised when a requested chunk is not found."""

    def __init__(self, chunk_id: str) -> None:
        self.chunk_id = chunk_id
        super().__init__(f"Chunk not found: {chunk_id}")


class MediaStateException(DomainException):
    """Raised when an operation needs the media in a different status."""

    def __init__(
        self,
        media_id: str,
        status: MediaStatus,
        expected: list[MediaStatus],
    ) -> None:
        self.media_id = media_id
        self.status = status
        self.expected = expected
        allowed = ", ".join(s.value for s in expected)
        super().__init__(
            f"Media {media_id} is {status.value}; expected one of: {allowed}"
        )


class JobRetryException(DomainException):
    """Raised when a job is not eligible for retry."""

    def __init__(
        self,
        job_id: str,
        status: JobStatus,
        attempt_number: int,
        max_attempts: int,
        reason: str | None = None,
    ) -> None:
        self.job_id = job_id
        self.status = status
        self.attempt_number = attempt_number
        self.max_attempts = max_attempts
        if reason is None and attempt_number >= max_attempts:
            reason = f"attempts exhausted ({attempt_number}/{max_attempts})"
        elif reason is None:
            reason = f"status is {status.value}, not failed"
        self.reason = reason
        super().__init__(f"Job {job_id} cannot be retried: {reason}")


class DispatchValidationException(DomainException):
    """Raised when a dispatch message fails validation."""

    def __init__(self, job_id: str, reason: str) -> None:
        self.job_id = job_id
        self.reason = reason
        super().__init__(f"Invalid dispatch message for job {job_id}: {reason}")


class QueuePublishException(DomainException):
    """Raised when a dispatch message could not be published."""

    def __init__(self, job_id: str, reason: str) -> None:
        self.job_id = job_id
        self.reason = reason
        super().__init__(f"Failed to publish job {job_id}: {reason}")


class WebhookSignatureException(DomainException):
    """Raised when a webhook signature is missing, stale or wrong."""

    def __init__(self, reason: str = "Invalid signature") -> None:
        self.reason = reason
        super().__init__(reason)


class InvalidWebhookPayloadException(DomainException):
    """Raised when a webhook body is not a valid event."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid webhook payload: {reason}")


class TranscriptionException(DomainException):
    """Raised when transcription fails."""

    def __init__(self, media_id: str, reason: str) -> None:
        self.media_id = media_id
        self.reason = reason
        super().__init__(f"Transcription failed for {media_id}: {reason}")


class IndexingException(DomainException):
    """Raised when chunk indexing fails."""

    def __init__(self, media_id: str, reason: str) -> None:
        self.media_id = media_id
        self.reason = reason
        super().__init__(f"Indexing failed for {media_id}: {reason}")


class EmbeddingException(DomainException):
    """Raised when embedding generation fails."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Embedding failed: {reason}")
