"""Liveness endpoint reporting processor state."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from dutyjobs import __version__
from dutyjobs.api.deps import get_processor
from dutyjobs.jobs.processor import BatchJobProcessor

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    version: str
    processor: str
    running_jobs: int
    pending_jobs: int


@router.get("/health", response_model=HealthResponse)
async def health_check(proc: BatchJobProcessor = Depends(get_processor)) -> HealthResponse:
    """Report whether the processor is dispatching and how busy it is.

    ``status`` is ``degraded`` while the processor is not accepting work,
    e.g. during shutdown.
    """
    queue = proc.queue_status()
    return HealthResponse(
        status="healthy" if proc.started else "degraded",
        version=__version__,
        processor="running" if proc.started else "stopped",
        running_jobs=queue.running_count,
        pending_jobs=queue.pending_count,
    )
