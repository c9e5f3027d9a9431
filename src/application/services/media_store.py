"""Typed persistence for media, variants and encoding jobs."""

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from pydantic_core import to_jsonable_python

from src.commons.infrastructure.documentdb.base import DocumentDBBase
from src.commons.settings.models import DocumentDBSettings
from src.commons.telemetry import get_logger
from src.domain.models.encoding import (
    EncodingJob,
    JobStatus,
    JobType,
    MediaVariant,
    VariantStatus,
    VideoQuality,
    ladder_index,
)
from src.domain.models.media import Media, MediaStatus


def _to_doc(fields: dict[str, Any]) -> dict[str, Any]:
    """Convert enums and datetimes to the stored JSON representation."""
    return dict(to_jsonable_python(fields))


def _status_in(statuses: Iterable[Any]) -> dict[str, Any]:
    values = [s.value if hasattr(s, "value") else s for s in statuses]
    return {"status": {"$in": values}}


class MediaStateStore:
    """Persists the pipeline records in the document store.

    Status changes go through ``transition_*`` methods, which are
    compare-and-set writes guarded by the allowed prior states. A guard
    miss returns False and is logged; it is never an error.
    """

    def __init__(
        self,
        document_db: DocumentDBBase,
        doc_settings: DocumentDBSettings,
    ) -> None:
        """Initialize the store.

        Args:
            document_db: Document store provider.
            doc_settings: Collection names.
        """
        self._doc_db = document_db
        self._logger = get_logger(__name__)

        self._media_collection = doc_settings.collections.media
        self._variants_collection = doc_settings.collections.media_variants
        self._jobs_collection = doc_settings.collections.encoding_jobs

    async def ensure_indexes(self) -> None:
        """Create the lookup indexes used by the pipeline."""
        await self._doc_db.create_index(
            self._variants_collection,
            [("media_id", 1), ("quality", 1)],
            unique=True,
        )
        await self._doc_db.create_index(
            self._jobs_collection,
            [("media_id", 1), ("created_at", -1)],
        )
        await self._doc_db.create_index(self._media_collection, [("status", 1)])

    # =========================================================================
    # Media
    # =========================================================================

    async def save_media(self, media: Media) -> str:
        """Insert a new media record."""
        doc_id = await self._doc_db.insert(
            self._media_collection,
            media.model_dump(mode="json"),
        )
        self._logger.info(
            "Media saved",
            extra={"media_id": media.id, "status": media.status.value},
        )
        return doc_id

    async def get_media(self, media_id: str) -> Media | None:
        """Get a media by ID, or None."""
        doc = await self._doc_db.find_by_id(self._media_collection, media_id)
        return Media.model_validate(doc) if doc else None

    async def update_media(self, media_id: str, **fields: Any) -> bool:
        """Set non-status fields on a media."""
        fields["updated_at"] = datetime.now(UTC)
        return await self._doc_db.update(
            self._media_collection,
            media_id,
            _to_doc(fields),
        )

    async def transition_media(
        self,
        media_id: str,
        new_status: MediaStatus,
        allowed_from: Iterable[MediaStatus],
        **fields: Any,
    ) -> bool:
        """Move a media to ``new_status`` if it is currently in ``allowed_from``.

        Args:
            media_id: Media to update.
            new_status: Target status.
            allowed_from: Statuses the media may currently be in.
            **fields: Extra fields written in the same update.

        Returns:
            True if the transition was applied.
        """
        allowed = list(allowed_from)
        fields.update(status=new_status, updated_at=datetime.now(UTC))
        applied = await self._doc_db.update_if(
            self._media_collection,
            media_id,
            _status_in(allowed),
            _to_doc(fields),
        )
        if applied:
            self._logger.info(
                "Media status changed",
                extra={"media_id": media_id, "status": new_status.value},
            )
        else:
            self._logger.info(
                "Media transition skipped",
                extra={
                    "media_id": media_id,
                    "target": new_status.value,
                    "allowed_from": [s.value for s in allowed],
                },
            )
        return applied

    async def settle_ai_stage(self, media_id: str) -> MediaStatus | None:
        """Finish transcription/indexing with the encoding-aware status.

        The media becomes ``ready`` when its encode job has completed (or
        there is none) and goes back to ``encoding`` otherwise.

        Returns:
            The status applied, or None if the media had left the AI stage.
        """
        encode_job = await self.get_latest_job(media_id, JobType.ENCODE)
        target = (
            MediaStatus.READY
            if encode_job is None or encode_job.status == JobStatus.COMPLETED
            else MediaStatus.ENCODING
        )
        applied = await self.transition_media(
            media_id,
            target,
            [MediaStatus.TRANSCRIBING, MediaStatus.INDEXING],
            last_error=None,
        )
        return target if applied else None

    # =========================================================================
    # Variants
    # =========================================================================

    async def insert_variants(self, variants: list[MediaVariant]) -> None:
        """Insert the per-tier variant rows for a media."""
        await self._doc_db.insert_many(
            self._variants_collection,
            [v.model_dump(mode="json") for v in variants],
        )

    async def get_variants(self, media_id: str) -> list[MediaVariant]:
        """Get a media's variants in ladder order, highest first."""
        docs = await self._doc_db.find(
            self._variants_collection,
            {"media_id": media_id},
        )
        variants = [MediaVariant.model_validate(d) for d in docs]
        return sorted(variants, key=lambda v: ladder_index(v.quality))

    async def get_variant(
        self,
        media_id: str,
        quality: VideoQuality,
    ) -> MediaVariant | None:
        """Get the variant row for one tier."""
        doc = await self._doc_db.find_one(
            self._variants_collection,
            {"media_id": media_id, "quality": quality.value},
        )
        return MediaVariant.model_validate(doc) if doc else None

    async def update_variant(self, variant_id: str, **fields: Any) -> bool:
        """Set fields on a variant."""
        return await self._doc_db.update(
            self._variants_collection,
            variant_id,
            _to_doc(fields),
        )

    async def update_variants_with_status(
        self,
        media_id: str,
        statuses: Iterable[VariantStatus],
        **fields: Any,
    ) -> int:
        """Set fields on a media's variants currently in ``statuses``."""
        return await self._doc_db.update_many(
            self._variants_collection,
            {"media_id": media_id, **_status_in(statuses)},
            _to_doc(fields),
        )

    async def delete_media(self, media_id: str) -> bool:
        """Delete a media with its variant and job rows.

        Returns:
            False if the media record did not exist.
        """
        variants = await self._doc_db.delete_many(
            self._variants_collection, {"media_id": media_id}
        )
        jobs = await self._doc_db.delete_many(
            self._jobs_collection, {"media_id": media_id}
        )
        deleted = await self._doc_db.delete(self._media_collection, media_id)
        self._logger.info(
            "Media records deleted",
            extra={
                "media_id": media_id,
                "variants": variants,
                "jobs": jobs,
                "deleted": deleted,
            },
        )
        return deleted

    # =========================================================================
    # Encoding jobs
    # =========================================================================

    async def save_job(self, job: EncodingJob) -> str:
        """Insert a new encoding job."""
        doc_id = await self._doc_db.insert(
            self._jobs_collection,
            job.model_dump(mode="json"),
        )
        self._logger.debug(
            "Encoding job saved",
            extra={
                "job_id": job.id,
                "media_id": job.media_id,
                "job_type": job.job_type.value,
            },
        )
        return doc_id

    async def get_job(self, job_id: str) -> EncodingJob | None:
        """Get a job by ID, or None."""
        doc = await self._doc_db.find_by_id(self._jobs_collection, job_id)
        return EncodingJob.model_validate(doc) if doc else None

    async def get_jobs_for_media(self, media_id: str) -> list[EncodingJob]:
        """Get a media's jobs, newest first."""
        docs = await self._doc_db.find(
            self._jobs_collection,
            {"media_id": media_id},
            sort=[("created_at", -1)],
        )
        return [EncodingJob.model_validate(d) for d in docs]

    async def get_latest_job(
        self,
        media_id: str,
        job_type: JobType,
    ) -> EncodingJob | None:
        """Get the newest job of a type for a media."""
        docs = await self._doc_db.find(
            self._jobs_collection,
            {"media_id": media_id, "job_type": job_type.value},
            limit=1,
            sort=[("created_at", -1)],
        )
        return EncodingJob.model_validate(docs[0]) if docs else None

    async def update_job(self, job_id: str, **fields: Any) -> bool:
        """Set non-status fields on a job."""
        fields["updated_at"] = datetime.now(UTC)
        return await self._doc_db.update(
            self._jobs_collection,
            job_id,
            _to_doc(fields),
        )

    async def transition_job(
        self,
        job_id: str,
        new_status: JobStatus,
        allowed_from: Iterable[JobStatus],
        **fields: Any,
    ) -> bool:
        """Move a job to ``new_status`` if it is currently in ``allowed_from``.

        Returns:
            True if the transition was applied.
        """
        allowed = list(allowed_from)
        fields.update(status=new_status, updated_at=datetime.now(UTC))
        applied = await self._doc_db.update_if(
            self._jobs_collection,
            job_id,
            _status_in(allowed),
            _to_doc(fields),
        )
        if not applied:
            self._logger.info(
                "Job transition skipped",
                extra={
                    "job_id": job_id,
                    "target": new_status.value,
                    "allowed_from": [s.value for s in allowed],
                },
            )
        return applied
