"""Mirrors job state into the record store."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict

from dutyjobs.jobs.models import RECOVERABLE_STATUSES, Job
from dutyjobs.services.interfaces import IRecordStore

logger = logging.getLogger(__name__)

JOBS_TABLE = "jobs"


class JobPersistence:
    """Writes each job transition to the ``jobs`` table.

    Write failures are logged and swallowed: the in-memory registry stays
    authoritative, at the cost of recovery fidelity.
    """

    def __init__(self, store: IRecordStore, enabled: bool = True) -> None:
        self._store = store
        self.enabled = enabled
        self._known: set[str] = set()
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def save(self, job: Job) -> bool:
        """Insert or update ``job``'s row. Returns False when nothing was written."""
        if not self.enabled:
            return False

        async with self._locks[job.id]:
            record = job.to_record()
            try:
                if job.id in self._known:
                    fields = {k: v for k, v in record.items() if k != "id"}
                    await self._store.update(JOBS_TABLE, job.id, fields)
                else:
                    await self._store.insert(JOBS_TABLE, [record])
                    self._known.add(job.id)
            except Exception:
                logger.error("Failed to persist job %s (%s)", job.id, job.status.value, exc_info=True)
                return False
        return True

    async def load_incomplete(self) -> list[Job]:
        """Load jobs last persisted as pending, running or paused."""
        if not self.enabled:
            return []

        try:
            records = await self._store.query(
                JOBS_TABLE, {"status": [s.value for s in RECOVERABLE_STATUSES]}
            )
        except Exception:
            logger.error("Failed to load persisted jobs", exc_info=True)
            return []

        jobs: list[Job] = []
        for record in records:
            try:
                job = Job.from_record(record)
            except (KeyError, ValueError, TypeError):
                logger.warning("Skipping unreadable job record %s", record.get("id"), exc_info=True)
                continue
            self._known.add(job.id)
            jobs.append(job)
        return jobs

    def forget(self, job_id: str) -> None:
        """Drop the bookkeeping of a job that will not be saved again."""
        self._locks.pop(job_id, None)
        self._known.discard(job_id)
