"""Progress bookkeeping and ``progressUpdate`` emission."""

from __future__ import annotations

import time

from dutyjobs.jobs.events import JobEvent, JobEventBus
from dutyjobs.jobs.models import Job, JobProgress, ProgressUpdate


class ProgressTracker:
    """Updates a job's counters and publishes the new state.

    Counters never exceed ``total``: ``completed + failed <= total`` holds
    after every call.
    """

    def __init__(self, events: JobEventBus) -> None:
        self._events = events
        # job id -> (monotonic start, items already processed at start)
        self._started: dict[str, tuple[float, int]] = {}

    def begin(self, job: Job, resume: bool = False) -> None:
        """Start timing a run of ``job``.

        A fresh attempt resets the counters; a resumed run keeps them so
        the percentage never goes backwards within one attempt.
        """
        if not resume:
            job.progress = JobProgress(total=job.progress.total)
        self._started[job.id] = (time.monotonic(), job.progress.processed)

    def forget(self, job_id: str) -> None:
        self._started.pop(job_id, None)

    def set_current(self, job: Job, item: str | None) -> None:
        job.progress.current = item
        self.publish(job)

    def item_completed(self, job: Job) -> None:
        if job.progress.remaining > 0:
            job.progress.completed += 1
        self.publish(job)

    def items_failed(self, job: Job, count: int = 1) -> None:
        job.progress.failed += min(max(count, 0), job.progress.remaining)
        self.publish(job)

    def complete_all(self, job: Job) -> None:
        """Mark every outstanding item done (single-step executors)."""
        job.progress.completed += job.progress.remaining
        job.progress.recompute()
        job.progress.percentage = 100
        self._emit(job)

    def publish(self, job: Job) -> None:
        job.progress.recompute()
        self._emit(job)

    def _emit(self, job: Job) -> None:
        update = ProgressUpdate(
            job_id=job.id,
            progress=JobProgress(**vars(job.progress)),
            status=job.status,
            current_item=job.progress.current,
            estimated_time_remaining=self.estimate_remaining(job),
        )
        self._events.emit(JobEvent.PROGRESS_UPDATE, update)

    def estimate_remaining(self, job: Job) -> float | None:
        """Seconds left at the observed throughput, None before the first item."""
        if job.id not in self._started:
            return None
        started, baseline = self._started[job.id]
        processed = job.progress.processed - baseline
        if processed <= 0:
            return None
        elapsed = time.monotonic() - started
        return elapsed / processed * job.progress.remaining
