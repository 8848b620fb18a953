"""Job management endpoints."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from fastapi import APIRouter, Depends, HTTPException

from dutyjobs.api.deps import get_processor
from dutyjobs.api.schemas import (
    JobActionResponse,
    JobCreateRequest,
    JobCreateResponse,
    JobListItem,
    JobRerunResponse,
    JobStatusResponse,
    QueueStatusResponse,
)
from dutyjobs.errors import JobValidationError
from dutyjobs.jobs.models import JobPriority, JobStatus, JobType
from dutyjobs.jobs.processor import BatchJobProcessor

router = APIRouter(prefix="/api/v1/jobs", tags=["jobs"])


def _require_job(proc: BatchJobProcessor, job_id: str) -> None:
    if proc.get(job_id) is None:
        raise HTTPException(status_code=404, detail="Job not found")


# ------------------------------------------------------------------
# POST: create jobs (202 Accepted)
# ------------------------------------------------------------------


@router.post("", response_model=JobCreateResponse, status_code=202)
async def create_job(
    req: JobCreateRequest,
    proc: BatchJobProcessor = Depends(get_processor),
) -> JobCreateResponse:
    try:
        job_id = await proc.submit(req.type, req.metadata, req.priority)
    except JobValidationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    job = proc.get(job_id)
    return JobCreateResponse(job_id=job_id, status=job.status.value, type=job.type.value)


# ------------------------------------------------------------------
# GET: query jobs
# ------------------------------------------------------------------


@router.get("", response_model=list[JobListItem])
async def list_jobs(
    status: JobStatus | None = None,
    type: JobType | None = None,
    priority: JobPriority | None = None,
    workspace_id: str | None = None,
    proc: BatchJobProcessor = Depends(get_processor),
) -> list[JobListItem]:
    return [
        JobListItem(
            job_id=j.id,
            type=j.type.value,
            status=j.status.value,
            priority=j.priority.value,
            percentage=j.progress.percentage,
            created_at=j.timestamps.created,
        )
        for j in proc.list(status=status, type=type, priority=priority, workspace_id=workspace_id)
    ]


@router.get("/queue", response_model=QueueStatusResponse)
async def queue_status(
    proc: BatchJobProcessor = Depends(get_processor),
) -> QueueStatusResponse:
    return QueueStatusResponse.from_status(
        proc.queue_status(), proc.config.progress_update_interval
    )


@router.get("/{job_id}", response_model=JobStatusResponse)
async def get_job(
    job_id: str,
    proc: BatchJobProcessor = Depends(get_processor),
) -> JobStatusResponse:
    job = proc.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobStatusResponse.from_job(job)


# ------------------------------------------------------------------
# POST: control jobs
# ------------------------------------------------------------------


async def _control(
    proc: BatchJobProcessor,
    job_id: str,
    action: Callable[[str], Awaitable[bool]],
    verb: str,
    done: str,
) -> JobActionResponse:
    _require_job(proc, job_id)
    if not await action(job_id):
        status = proc.get(job_id).status.value
        raise HTTPException(status_code=409, detail=f"Cannot {verb} job with status: {status}")
    return JobActionResponse(
        job_id=job_id,
        status=proc.get(job_id).status.value,
        message=f"Job {done}",
    )


@router.post("/{job_id}/pause", response_model=JobActionResponse)
async def pause_job(
    job_id: str,
    proc: BatchJobProcessor = Depends(get_processor),
) -> JobActionResponse:
    return await _control(proc, job_id, proc.pause, "pause", "paused")


@router.post("/{job_id}/resume", response_model=JobActionResponse)
async def resume_job(
    job_id: str,
    proc: BatchJobProcessor = Depends(get_processor),
) -> JobActionResponse:
    return await _control(proc, job_id, proc.resume, "resume", "resumed")


@router.post("/{job_id}/cancel", response_model=JobActionResponse)
async def cancel_job(
    job_id: str,
    proc: BatchJobProcessor = Depends(get_processor),
) -> JobActionResponse:
    return await _control(proc, job_id, proc.cancel, "cancel", "cancelled")


@router.post("/{job_id}/rerun", response_model=JobRerunResponse, status_code=202)
async def rerun_job(
    job_id: str,
    proc: BatchJobProcessor = Depends(get_processor),
) -> JobRerunResponse:
    _require_job(proc, job_id)
    new_id = await proc.rerun(job_id)
    if new_id is None:
        status = proc.get(job_id).status.value
        raise HTTPException(
            status_code=409,
            detail=f"Cannot rerun job with status: {status}. Only dead_letter or cancelled jobs can be rerun.",
        )
    return JobRerunResponse(
        original_job_id=job_id, job_id=new_id, status=proc.get(new_id).status.value
    )
