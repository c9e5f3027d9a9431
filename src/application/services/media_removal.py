"""Deleting a media and everything the pipeline stored for it."""

from src.application.dtos.encoding import MediaDeletionResult
from src.application.services.index_store import IndexStoreBase
from src.application.services.media_store import MediaStateStore
from src.commons.infrastructure.blob.base import BlobStorageBase
from src.commons.settings.models import BlobStorageSettings
from src.commons.telemetry import LogContext, get_logger
from src.domain.exceptions import MediaNotFoundException, MediaStateException
from src.domain.models.media import Media, MediaStatus
from src.domain.value_objects.storage_paths import MediaPaths

# Background tasks would write the transcript and chunks back after removal
BUSY_STATUSES = (MediaStatus.TRANSCRIBING, MediaStatus.INDEXING)


class MediaRemovalService:
    """Removes a media's objects, chunks and records.

    Objects and chunks go first so a failure leaves the media record in
    place and the deletion can be repeated.
    """

    def __init__(
        self,
        state_store: MediaStateStore,
        blob_storage: BlobStorageBase,
        blob_settings: BlobStorageSettings,
        index_store: IndexStoreBase | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            state_store: Media persistence.
            blob_storage: Object store holding uploads and derived files.
            blob_settings: Bucket names.
            index_store: Chunk storage, when retrieval is enabled.
        """
        self._store = state_store
        self._blob = blob_storage
        self._bucket = blob_settings.buckets.media
        self._index = index_store
        self._logger = get_logger(__name__)

    async def _object_keys(self, media: Media) -> list[str]:
        keys = set(MediaPaths(media_id=media.id).all_objects(media.filename))
        recorded = [
            media.raw_path,
            media.audio_path,
            media.thumbnail_path,
            media.transcript_path,
        ]
        recorded.extend(v.path for v in await self._store.get_variants(media.id))
        keys.update(path for path in recorded if path)
        return sorted(keys)

    async def delete_media(self, media_id: str) -> MediaDeletionResult:
        """Delete a media and its stored objects, chunks and records.

        Raises:
            MediaNotFoundException: If the media does not exist.
            MediaStateException: If transcription or indexing is running.
        """
        with LogContext(media_id=media_id):
            media = await self._store.get_media(media_id)
            if media is None:
                raise MediaNotFoundException(media_id)
            if media.status in BUSY_STATUSES:
                allowed = [s for s in MediaStatus if s not in BUSY_STATUSES]
                raise MediaStateException(media_id, media.status, allowed)

            removed = 0
            for key in await self._object_keys(media):
                if await self._blob.delete(self._bucket, key):
                    removed += 1

            chunks = await self._index.delete_all(media_id) if self._index else 0
            deleted = await self._store.delete_media(media_id)

            self._logger.info(
                "Media deleted",
                extra={"objects_removed": removed, "chunks_removed": chunks},
            )
            return MediaDeletionResult(
                media_id=media_id,
                deleted=deleted,
                objects_removed=removed,
                chunks_removed=chunks,
            )
