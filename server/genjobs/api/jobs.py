import logging

from fastapi import APIRouter, HTTPException, Query

from genjobs.models.jobs import JobStatus, JobStatusResponse, QueueGenerationResponse
from genjobs.services.storage import (
    InsufficientCreditsError,
    InvalidRequestError,
    JobNotFoundError,
    job_store,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/queue-generation")
async def queue_generation(
    prompt: str | None = None,
    width: int | None = None,
    height: int | None = None,
    count: int = 1,
) -> dict[str, str]:
    """Queue a generation job for the prompt. Returns a job ID to poll."""
    try:
        job_id = job_store.submit(prompt, width=width, height=height, count=count)
    except InsufficientCreditsError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    return QueueGenerationResponse(job_id=job_id).model_dump(by_alias=True)


@router.get("/job-status")
async def get_job_status(job_id: str | None = Query(None, alias="jobId")) -> dict:
    """Report a job's status, with its images once completed."""
    try:
        job = job_store.get_job(job_id)
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e

    if job.status is JobStatus.COMPLETED:
        response = JobStatusResponse(
            status=job.status.value,
            images=job.result,
            credits=job_store.get_credits(),
        )
    elif job.status is JobStatus.QUEUED:
        response = JobStatusResponse(status="processing")
    elif job.status is JobStatus.FAILED:
        response = JobStatusResponse(status=job.status.value, error=job.error)
    else:
        response = JobStatusResponse(status=job.status.value)

    return response.model_dump(exclude_none=True)


@router.post("/job-status/cancel")
async def cancel_job(job_id: str | None = Query(None, alias="jobId")) -> dict[str, str]:
    """Cancel a job that is still queued."""
    try:
        job_store.cancel(job_id)
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except JobNotFoundError as e:
        logger.info("Cancel rejected for job %s: not queued", job_id)
        raise HTTPException(status_code=404, detail=str(e)) from e

    return {"message": "Job successfully cancelled."}
