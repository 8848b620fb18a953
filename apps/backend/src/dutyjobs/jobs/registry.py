"""In-memory view of every known job."""

from __future__ import annotations

from dutyjobs.jobs.models import Job, JobPriority, JobStatus, JobType
from dutyjobs.jobs.queue import PriorityJobQueue


class JobRegistry:
    """Authoritative live job map plus the pending queue and running set.

    The record store only mirrors this registry; if a mirror write fails the
    in-memory state still wins.
    """

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}
        self.running: set[str] = set()
        self.queue = PriorityJobQueue(self._priority_of)

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, job_id: object) -> bool:
        return job_id in self._jobs

    def _priority_of(self, job_id: str) -> JobPriority | None:
        job = self._jobs.get(job_id)
        return job.priority if job else None

    def add(self, job: Job) -> None:
        self._jobs[job.id] = job

    def get(self, job_id: str) -> Job | None:
        return self._jobs.get(job_id)

    def enqueue(self, job_id: str) -> None:
        self.queue.push(job_id)

    def dequeue(self, job_id: str) -> None:
        self.queue.remove(job_id)

    def mark_running(self, job_id: str) -> None:
        self.running.add(job_id)

    def release(self, job_id: str) -> None:
        self.running.discard(job_id)

    def list(
        self,
        status: JobStatus | None = None,
        type: JobType | None = None,
        priority: JobPriority | None = None,
        workspace_id: str | None = None,
    ) -> list[Job]:
        """List jobs matching every given filter, most recent first."""
        jobs = list(self._jobs.values())
        if status is not None:
            jobs = [j for j in jobs if j.status == status]
        if type is not None:
            jobs = [j for j in jobs if j.type == type]
        if priority is not None:
            jobs = [j for j in jobs if j.priority == priority]
        if workspace_id is not None:
            jobs = [j for j in jobs if j.workspace_id == workspace_id]
        return sorted(jobs, key=lambda j: j.timestamps.created, reverse=True)
