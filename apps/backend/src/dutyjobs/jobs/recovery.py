"""Startup reload of incomplete jobs."""

from __future__ import annotations

import logging

from dutyjobs.jobs.models import Job, JobStatus
from dutyjobs.jobs.persistence import JobPersistence
from dutyjobs.jobs.registry import JobRegistry

logger = logging.getLogger(__name__)


class RecoveryLoader:
    """Rehydrates pending, running and paused jobs into the registry.

    Jobs persisted as running lost their executor with the previous process
    and are demoted to pending; they restart from their first batch.
    """

    def __init__(self, persistence: JobPersistence, registry: JobRegistry) -> None:
        self._persistence = persistence
        self._registry = registry

    async def load(self) -> list[Job]:
        jobs = await self._persistence.load_incomplete()
        recovered: list[Job] = []

        for job in sorted(jobs, key=lambda j: j.timestamps.created):
            if job.id in self._registry:
                continue
            demoted = job.status == JobStatus.RUNNING
            if demoted:
                job.status = JobStatus.PENDING
            self._registry.add(job)
            if job.status == JobStatus.PENDING:
                self._registry.enqueue(job.id)
            if demoted:
                await self._persistence.save(job)
            recovered.append(job)

        if recovered:
            logger.info(
                "Recovered %d job(s), %d queued",
                len(recovered),
                sum(1 for j in recovered if j.status == JobStatus.PENDING),
            )
        return recovered
