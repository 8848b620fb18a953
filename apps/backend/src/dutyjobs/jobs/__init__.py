"""Background batch job processing."""

from dutyjobs.jobs.events import JobEvent, JobEventBus
from dutyjobs.jobs.models import (
    Job,
    JobError,
    JobPriority,
    JobProgress,
    JobStatus,
    JobTimestamps,
    JobType,
    ProgressUpdate,
    QueueStatus,
)
from dutyjobs.jobs.processor import BatchJobProcessor

__all__ = [
    "BatchJobProcessor",
    "Job",
    "JobError",
    "JobEvent",
    "JobEventBus",
    "JobPriority",
    "JobProgress",
    "JobStatus",
    "JobTimestamps",
    "JobType",
    "ProgressUpdate",
    "QueueStatus",
]
