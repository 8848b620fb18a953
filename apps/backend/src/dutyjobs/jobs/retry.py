"""Retry and dead-letter decisions for failed executions."""

from __future__ import annotations

import asyncio
import logging
import traceback
from collections.abc import Callable

from dutyjobs.config import ProcessorConfig
from dutyjobs.jobs.events import JobEvent, JobEventBus
from dutyjobs.jobs.models import Job, JobError, JobStatus

logger = logging.getLogger(__name__)


class RetryHandler:
    """Schedules linear-backoff retries and dead-letters exhausted jobs.

    The n-th retry waits ``retry_delay * n`` milliseconds.
    """

    def __init__(
        self,
        config: ProcessorConfig,
        events: JobEventBus,
        requeue: Callable[[str], None],
    ) -> None:
        self._config = config
        self._events = events
        self._requeue = requeue
        self._timers: dict[str, asyncio.TimerHandle] = {}

    @property
    def pending_retries(self) -> int:
        return len(self._timers)

    def delay_for(self, attempt: int) -> float:
        """Backoff in seconds before retry ``attempt``."""
        return self._config.retry_delay_seconds * attempt

    def handle_failure(self, job: Job, exc: BaseException) -> bool:
        """Record a failed attempt. Returns True if a retry was scheduled."""
        job.status = JobStatus.FAILED
        attempt = job.retry_count + 1
        job.metadata["retryCount"] = attempt

        if attempt < job.max_retries:
            delay = self.delay_for(attempt)
            logger.warning(
                "Job %s failed (%s), retry %d/%d in %.2fs",
                job.id, exc, attempt, job.max_retries, delay,
            )
            loop = asyncio.get_running_loop()
            self._timers[job.id] = loop.call_later(delay, self._fire, job.id)
            self._events.emit(JobEvent.JOB_RETRY, {"job": job.snapshot(), "attempt": attempt})
            return True

        job.status = JobStatus.DEAD_LETTER
        job.timestamps.stamp("completed")
        job.error = JobError.from_exception(
            exc, details="".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        )
        logger.error("Job %s dead-lettered after %d attempts: %s", job.id, attempt, exc)
        self._events.emit(JobEvent.JOB_FAILED, job.snapshot())
        return False

    def _fire(self, job_id: str) -> None:
        self._timers.pop(job_id, None)
        self._requeue(job_id)

    def cancel(self, job_id: str) -> bool:
        timer = self._timers.pop(job_id, None)
        if timer is None:
            return False
        timer.cancel()
        return True

    def cancel_all(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
