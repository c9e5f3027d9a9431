"""Media upload, status and AI-stage endpoints."""

from typing import Annotated

from fastapi import APIRouter, Header, status

from src.api.dependencies import (
    DispatcherDep,
    IndexerDep,
    MediaRemovalDep,
    RetrieverDep,
    StateStoreDep,
    TranscriptionDep,
)
from src.api.middleware.error_handler import APIError
from src.application.dtos.encoding import (
    ConfirmUploadRequest,
    CreateEncodingJobsResult,
    CreateUploadRequest,
    CreateUploadResponse,
    EncodingProgress,
    MediaDeletionResult,
)
from src.application.dtos.search import ScoredChunk
from src.application.dtos.transcription import (
    ReindexResult,
    TranscriptionResult,
    TranscriptionStatus,
)
from src.application.services.transcription import TranscriptionService
from src.domain.exceptions import MediaNotFoundException
from src.domain.models.encoding import EncodingJob, MediaVariant
from src.domain.models.media import Media
from src.domain.models.transcript import Transcript

router = APIRouter(prefix="/media")


def _require_transcription(
    service: TranscriptionService | None,
) -> TranscriptionService:
    if service is None:
        raise APIError(
            code="TRANSCRIPTION_DISABLED",
            message="Transcription is not configured",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    return service


@router.post(
    "/uploads",
    response_model=CreateUploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start an upload",
    description="Create a media record and return a presigned URL for the raw file.",
)
async def create_upload(
    request: CreateUploadRequest,
    dispatcher: DispatcherDep,
) -> CreateUploadResponse:
    """Create a media in uploading and presign its raw upload."""
    return await dispatcher.create_upload(request)


@router.post(
    "/{media_id}/confirm",
    response_model=CreateEncodingJobsResult,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Confirm an upload",
    description="Mark the raw file as uploaded and dispatch encoding.",
)
async def confirm_upload(
    media_id: str,
    dispatcher: DispatcherDep,
    request: ConfirmUploadRequest | None = None,
) -> CreateEncodingJobsResult:
    """Confirm the raw upload and dispatch encoding jobs."""
    return await dispatcher.confirm_upload(media_id, request)


@router.get("/{media_id}", response_model=Media, summary="Get media")
async def get_media(media_id: str, store: StateStoreDep) -> Media:
    """Get a media record by ID."""
    media = await store.get_media(media_id)
    if media is None:
        raise MediaNotFoundException(media_id)
    return media


@router.delete(
    "/{media_id}",
    response_model=MediaDeletionResult,
    summary="Delete media",
    description=(
        "Delete a media with its stored files, transcript chunks, variants "
        "and jobs. Requires the X-Confirm-Delete header set to 'true'."
    ),
)
async def delete_media(
    media_id: str,
    removal: MediaRemovalDep,
    x_confirm_delete: Annotated[
        str | None,
        Header(description="Must be 'true' to confirm deletion"),
    ] = None,
) -> MediaDeletionResult:
    """Delete a media and everything stored for it."""
    if x_confirm_delete != "true":
        raise APIError(
            code="CONFIRMATION_REQUIRED",
            message="Deletion requires X-Confirm-Delete header set to 'true'",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"media_id": media_id},
        )
    return await removal.delete_media(media_id)


@router.get(
    "/{media_id}/jobs",
    response_model=list[EncodingJob],
    summary="List encoding jobs",
)
async def list_jobs(media_id: str, dispatcher: DispatcherDep) -> list[EncodingJob]:
    """List a media's encoding jobs, newest first."""
    return await dispatcher.get_jobs_for_media(media_id)


@router.get(
    "/{media_id}/variants",
    response_model=list[MediaVariant],
    summary="List variants",
)
async def list_variants(media_id: str, dispatcher: DispatcherDep) -> list[MediaVariant]:
    """List a media's variants in ladder order."""
    return await dispatcher.get_variants_for_media(media_id)


@router.get(
    "/{media_id}/progress",
    response_model=EncodingProgress,
    summary="Encoding progress",
)
async def get_progress(media_id: str, dispatcher: DispatcherDep) -> EncodingProgress:
    """Report how many non-skipped variants are ready."""
    return await dispatcher.get_encoding_progress(media_id)


@router.get(
    "/{media_id}/transcript",
    response_model=Transcript,
    summary="Get transcript",
)
async def get_transcript(media_id: str, service: TranscriptionDep) -> Transcript:
    """Get the stored transcript of a media."""
    transcript = await _require_transcription(service).get_transcript(media_id)
    if transcript is None:
        raise APIError(
            code="TRANSCRIPT_NOT_FOUND",
            message=f"No transcript for media {media_id}",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"media_id": media_id},
        )
    return transcript


@router.get(
    "/{media_id}/transcription",
    response_model=TranscriptionStatus,
    summary="Transcription status",
)
async def get_transcription_status(
    media_id: str,
    service: TranscriptionDep,
) -> TranscriptionStatus:
    """Report where a media stands in the transcription stage."""
    return await _require_transcription(service).get_transcription_status(media_id)


@router.post(
    "/{media_id}/transcribe",
    response_model=TranscriptionResult,
    summary="Transcribe now",
    description="Run transcription and indexing for a media and wait for the outcome.",
)
async def transcribe(media_id: str, service: TranscriptionDep) -> TranscriptionResult:
    """Transcribe a media synchronously."""
    return await _require_transcription(service).process_media_transcription(media_id)


@router.post(
    "/{media_id}/reindex",
    response_model=ReindexResult,
    summary="Re-index transcript",
)
async def reindex(media_id: str, indexer: IndexerDep) -> ReindexResult:
    """Rebuild a media's chunks from its stored transcript."""
    if indexer is None:
        raise APIError(
            code="INDEXING_DISABLED",
            message="Indexing is not configured",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    return await indexer.retry_media_indexing(media_id)


@router.get(
    "/{media_id}/chunks",
    response_model=list[ScoredChunk],
    summary="List transcript chunks",
)
async def list_chunks(
    media_id: str,
    store: StateStoreDep,
    retriever: RetrieverDep,
) -> list[ScoredChunk]:
    """List a media's transcript chunks in chunk order."""
    if await store.get_media(media_id) is None:
        raise MediaNotFoundException(media_id)
    return await retriever.get_chunks_for_media(media_id)
