"""Encoding job operator actions."""

from fastapi import APIRouter

from src.api.dependencies import DispatcherDep
from src.application.dtos.encoding import CreateEncodingJobsResult
from src.domain.models.encoding import EncodingJob

router = APIRouter(prefix="/jobs")


@router.post(
    "/{job_id}/retry",
    response_model=CreateEncodingJobsResult,
    summary="Retry a failed job",
    description=(
        "Re-dispatch a failed encoding job under the same id. "
        "Returns 409 when the job is not failed or has no attempts left."
    ),
)
async def retry_job(job_id: str, dispatcher: DispatcherDep) -> CreateEncodingJobsResult:
    """Re-dispatch a failed encoding job."""
    return await dispatcher.retry_failed_job(job_id)


@router.post(
    "/{job_id}/cancel",
    response_model=EncodingJob,
    summary="Cancel a job",
)
async def cancel_job(job_id: str, dispatcher: DispatcherDep) -> EncodingJob:
    """Cancel a job that has not finished yet."""
    return await dispatcher.cancel_job(job_id)
