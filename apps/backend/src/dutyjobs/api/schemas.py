"""Request and response schemas for the dutyjobs API."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from dutyjobs.jobs.models import Job, JobPriority, JobType, QueueStatus


# ------------------------------------------------------------------
# Requests
# ------------------------------------------------------------------


class JobCreateRequest(BaseModel):
    type: JobType = Field(..., description="Job type")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Executor parameters (productIds, importData, scenarioParams, workspaceId, ...)",
    )
    priority: JobPriority = Field(JobPriority.MEDIUM, description="Queue priority tier")


# ------------------------------------------------------------------
# Responses
# ------------------------------------------------------------------


class JobCreateResponse(BaseModel):
    job_id: str
    status: str
    type: str


class JobProgressResponse(BaseModel):
    total: int = 0
    completed: int = 0
    failed: int = 0
    current: str | None = None
    percentage: int = 0


class JobErrorResponse(BaseModel):
    message: str
    code: str
    details: str | None = None


class JobTimestampsResponse(BaseModel):
    created: datetime
    started: datetime | None = None
    paused: datetime | None = None
    resumed: datetime | None = None
    completed: datetime | None = None


class JobStatusResponse(BaseModel):
    job_id: str
    type: str
    status: str
    priority: str
    progress: JobProgressResponse
    metadata: dict[str, Any] = Field(default_factory=dict)
    timestamps: JobTimestampsResponse
    error: JobErrorResponse | None = None

    @classmethod
    def from_job(cls, job: Job) -> JobStatusResponse:
        return cls(
            job_id=job.id,
            type=job.type.value,
            status=job.status.value,
            priority=job.priority.value,
            progress=JobProgressResponse(**vars(job.progress)),
            metadata=dict(job.metadata),
            timestamps=JobTimestampsResponse(**vars(job.timestamps)),
            error=JobErrorResponse(**vars(job.error)) if job.error else None,
        )


class JobListItem(BaseModel):
    job_id: str
    type: str
    status: str
    priority: str
    percentage: int = 0
    created_at: datetime


class QueueStatusResponse(BaseModel):
    pending_count: int
    running_count: int
    max_concurrent: int
    total_jobs: int
    poll_interval_ms: int

    @classmethod
    def from_status(cls, status: QueueStatus, poll_interval_ms: int) -> QueueStatusResponse:
        return cls(**vars(status), poll_interval_ms=poll_interval_ms)


class JobActionResponse(BaseModel):
    job_id: str
    status: str
    message: str


class JobRerunResponse(BaseModel):
    original_job_id: str
    job_id: str
    status: str
