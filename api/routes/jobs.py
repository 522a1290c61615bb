"""
Jobs Routes

Asynchronous resolution through the work queue.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from api.deps import get_queue
from api.errors import NotFoundError
from api.models.requests import JobRequest
from api.models.responses import JobInfo, JobResponse
from orchestrator import ResolutionQueue


router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.post("", response_model=JobResponse, status_code=202)
def submit_job(
    request: JobRequest,
    jobs: ResolutionQueue = Depends(get_queue),
) -> JobResponse:
    """Enqueue a market; returns the existing job if one is active."""
    job = jobs.submit(request.market_id)
    return JobResponse(ok=True, job=JobInfo(**job.to_dict()))


@router.get("/{job_id}", response_model=JobResponse)
def get_job(
    job_id: str,
    jobs: ResolutionQueue = Depends(get_queue),
) -> JobResponse:
    job = jobs.get(job_id)
    if job is None:
        raise NotFoundError(f"Job not found: {job_id}", details={"job_id": job_id})
    return JobResponse(ok=True, job=JobInfo(**job.to_dict()))
