"""Batch job processor with priority queueing and background execution."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine, Mapping
from typing import Any

from dutyjobs.config import ProcessorConfig
from dutyjobs.errors import JobValidationError
from dutyjobs.jobs.cancellation import CancellationToken
from dutyjobs.jobs.events import JobEvent, JobEventBus
from dutyjobs.jobs.executors.base import ExecutionContext, ExecutorRegistry
from dutyjobs.jobs.models import (
    Job,
    JobPriority,
    JobProgress,
    JobStatus,
    JobType,
    QueueStatus,
)
from dutyjobs.jobs.persistence import JobPersistence
from dutyjobs.jobs.progress import ProgressTracker
from dutyjobs.jobs.recovery import RecoveryLoader
from dutyjobs.jobs.registry import JobRegistry
from dutyjobs.jobs.retry import RetryHandler
from dutyjobs.services.interfaces import IRecordStore

logger = logging.getLogger(__name__)

# metadata keys carried over when a job is rerun
RERUN_KEYS = (
    "productIds",
    "importData",
    "scenarioParams",
    "exportFormat",
    "workspaceId",
    "estimatedDuration",
)


class BatchJobProcessor:
    """Runs submitted jobs in the background with bounded concurrency.

    Pending jobs wait in a priority queue. The dispatcher starts the head of
    the queue whenever fewer than ``max_concurrent_jobs`` are running; each
    job then runs as its own asyncio task. Pause and cancel are cooperative:
    they set the job's cancellation token and the executor stops at its next
    checkpoint.

    Jobs can be submitted before :meth:`start`; they are dispatched once the
    processor has started (and recovered persisted work).
    """

    def __init__(
        self,
        executors: ExecutorRegistry,
        store: IRecordStore,
        config: ProcessorConfig | None = None,
        events: JobEventBus | None = None,
    ) -> None:
        self.config = config or ProcessorConfig()
        self.events = events or JobEventBus()
        self._executors = executors
        self._store = store
        self._registry = JobRegistry()
        self._persistence = JobPersistence(store, enabled=self.config.enable_persistence)
        self._tracker = ProgressTracker(self.events)
        self._retry = RetryHandler(self.config, self.events, self._requeue_for_retry)
        self._recovery = RecoveryLoader(self._persistence, self._registry)
        self._tokens: dict[str, CancellationToken] = {}
        self._tasks: dict[str, asyncio.Task[None]] = {}
        # paused jobs whose next dispatch continues the current attempt
        self._resuming: set[str] = set()
        self._background: set[asyncio.Task[Any]] = set()
        self._draining = False
        self._accepting = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def started(self) -> bool:
        return self._accepting

    async def start(self) -> list[Job]:
        """Recover persisted work and begin dispatching.

        Returns:
            Jobs reloaded from the record store (empty without persistence).
        """
        recovered: list[Job] = []
        if self.config.enable_persistence:
            recovered = await self._recovery.load()
        self._accepting = True
        logger.info(
            "Batch processor started (max_concurrent=%d, queued=%d)",
            self.config.max_concurrent_jobs,
            len(self._registry.queue),
        )
        self._drain_queue()
        return recovered

    async def shutdown(self) -> None:
        """Stop dispatching, signal running jobs and wait for them to yield.

        Jobs interrupted here keep their ``running`` record and are demoted
        to pending by the next startup's recovery.
        """
        self._accepting = False
        self._retry.cancel_all()
        for token in list(self._tokens.values()):
            token.cancel("shutdown")
        tasks = list(self._tasks.values())
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
        await self.events.drain()
        logger.info("Batch processor stopped")

    async def wait_until_idle(self, timeout: float | None = None, poll_interval: float = 0.01) -> None:
        """Wait until nothing is running, queued for dispatch or awaiting a retry."""

        async def _idle() -> None:
            while self._tasks or self._retry.pending_retries or self._background or (
                self._accepting and len(self._registry.queue) > 0
            ):
                await asyncio.sleep(poll_interval)

        await asyncio.wait_for(_idle(), timeout)

    # ------------------------------------------------------------------
    # Submission surface
    # ------------------------------------------------------------------

    async def submit(
        self,
        job_type: JobType | str,
        metadata: Mapping[str, Any] | None = None,
        priority: JobPriority | str = JobPriority.MEDIUM,
    ) -> str:
        """Create a pending job and queue it. Never waits for execution.

        Raises:
            JobValidationError: If the type, priority or metadata is invalid.
        """
        try:
            job_type = JobType(job_type)
            priority = JobPriority(priority)
        except ValueError as e:
            raise JobValidationError(str(e)) from e

        meta = dict(metadata or {})
        self._executors[job_type].validate(meta)
        meta["retryCount"] = 0
        meta["maxRetries"] = self.config.retry_attempts

        job = Job(type=job_type, priority=priority, metadata=meta)
        total = 1 if job_type is JobType.SCENARIO_ANALYSIS else len(job.targets)
        job.progress = JobProgress(total=total)

        self._registry.add(job)
        await self._persistence.save(job)
        self._registry.enqueue(job.id)
        logger.info("Job %s added (%s, %s, %d items)", job.id, job_type.value, priority.value, total)
        self.events.emit(JobEvent.JOB_ADDED, job.snapshot())
        self._drain_queue()
        return job.id

    async def pause(self, job_id: str) -> bool:
        """Pause a running job. Returns False if it is not running."""
        job = self._registry.get(job_id)
        if job is None or job.status != JobStatus.RUNNING:
            return False

        token = self._tokens.get(job_id)
        if token is not None:
            token.cancel("paused")
        job.status = JobStatus.PAUSED
        job.timestamps.stamp("paused")
        self._registry.release(job_id)
        logger.info("Job %s paused", job_id)
        self.events.emit(JobEvent.JOB_PAUSED, job.snapshot())
        await self._persistence.save(job)
        self._drain_queue()
        return True

    async def resume(self, job_id: str) -> bool:
        """Re-queue a paused job at its original priority."""
        job = self._registry.get(job_id)
        if job is None or job.status != JobStatus.PAUSED:
            return False

        job.status = JobStatus.PENDING
        job.timestamps.stamp("resumed")
        self._resuming.add(job_id)
        self._registry.enqueue(job_id)
        logger.info("Job %s resumed", job_id)
        self.events.emit(JobEvent.JOB_RESUMED, job.snapshot())
        await self._persistence.save(job)
        self._drain_queue()
        return True

    async def cancel(self, job_id: str) -> bool:
        """Cancel a job that has not reached a terminal state."""
        job = self._registry.get(job_id)
        if job is None or job.status.is_terminal:
            return False

        token = self._tokens.get(job_id)
        if token is not None:
            token.cancel("cancelled")
        self._retry.cancel(job_id)
        self._resuming.discard(job_id)
        job.status = JobStatus.CANCELLED
        job.timestamps.stamp("completed")
        self._registry.release(job_id)
        self._registry.dequeue(job_id)
        logger.info("Job %s cancelled", job_id)
        self.events.emit(JobEvent.JOB_CANCELLED, job.snapshot())
        await self._persistence.save(job)
        # a running job is forgotten once its task settles
        if job_id not in self._tokens:
            self._persistence.forget(job_id)
        self._drain_queue()
        return True

    async def rerun(self, job_id: str) -> str | None:
        """Submit a fresh copy of a dead-lettered or cancelled job.

        Returns:
            The new job id, or None if the job is unknown or not rerunnable.
        """
        job = self._registry.get(job_id)
        if job is None or job.status not in (JobStatus.DEAD_LETTER, JobStatus.CANCELLED):
            return None

        metadata = {k: job.metadata[k] for k in RERUN_KEYS if k in job.metadata}
        previous = job.metadata.get("parameters") or {}
        metadata["parameters"] = {
            **previous,
            "originalJobId": job.id,
            "rerunAttempt": int(previous.get("rerunAttempt", 0)) + 1,
        }
        new_id = await self.submit(job.type, metadata, job.priority)
        logger.info("Job %s rerun as %s", job_id, new_id)
        return new_id

    def get(self, job_id: str) -> Job | None:
        return self._registry.get(job_id)

    def list(
        self,
        status: JobStatus | str | None = None,
        type: JobType | str | None = None,
        priority: JobPriority | str | None = None,
        workspace_id: str | None = None,
    ) -> list[Job]:
        """List jobs, most recent first."""
        return self._registry.list(
            status=JobStatus(status) if status is not None else None,
            type=JobType(type) if type is not None else None,
            priority=JobPriority(priority) if priority is not None else None,
            workspace_id=workspace_id,
        )

    def queue_status(self) -> QueueStatus:
        return QueueStatus(
            pending_count=len(self._registry.queue),
            running_count=len(self._registry.running),
            max_concurrent=self.config.max_concurrent_jobs,
            total_jobs=len(self._registry),
        )

    # ------------------------------------------------------------------
    # Dispatcher
    # ------------------------------------------------------------------

    def _drain_queue(self) -> None:
        """Start queued jobs while capacity remains."""
        if self._draining or not self._accepting:
            return

        self._draining = True
        try:
            while (
                len(self._registry.queue) > 0
                and len(self._registry.running) < self.config.max_concurrent_jobs
            ):
                job_id = self._registry.queue.pop()
                job = self._registry.get(job_id) if job_id else None
                # Cancelled while queued
                if job is None or job.status != JobStatus.PENDING:
                    continue
                self._dispatch(job)
        finally:
            self._draining = False

    def _dispatch(self, job: Job) -> None:
        job.status = JobStatus.RUNNING
        job.timestamps.stamp("started")
        self._registry.mark_running(job.id)

        token = CancellationToken()
        self._tokens[job.id] = token
        resumed = job.id in self._resuming
        self._resuming.discard(job.id)
        self._tracker.begin(job, resume=resumed)
        task = asyncio.create_task(self._run_job(job, token, resumed), name=f"job:{job.id}")
        self._tasks[job.id] = task
        logger.info("Job %s started (%s)", job.id, job.type.value)
        self.events.emit(JobEvent.JOB_STARTED, job.snapshot())

    async def _run_job(self, job: Job, token: CancellationToken, resumed: bool = False) -> None:
        """Execute one attempt of a job, or the rest of a paused one, and settle its state."""
        try:
            await self._persistence.save(job)
            if token.cancelled:
                return
            # paused after its last item: nothing left to execute
            finished = resumed and job.progress.total > 0 and job.progress.remaining == 0
            if not finished:
                context = ExecutionContext(
                    store=self._store,
                    tracker=self._tracker,
                    batch_size=self.config.batch_size,
                )
                await self._executors[job.type].execute(job, token, context)

            if not token.cancelled and job.status == JobStatus.RUNNING:
                job.status = JobStatus.COMPLETED
                job.timestamps.stamp("completed")
                started = job.timestamps.started or job.timestamps.created
                job.metadata["actualDuration"] = int(
                    (job.timestamps.completed - started).total_seconds() * 1000
                )
                logger.info(
                    "Job %s completed (%d ok, %d failed)",
                    job.id, job.progress.completed, job.progress.failed,
                )
                self.events.emit(JobEvent.JOB_COMPLETED, job.snapshot())
        except Exception as e:
            if not token.cancelled and job.status == JobStatus.RUNNING:
                logger.exception("Job %s failed", job.id)
                self._retry.handle_failure(job, e)
        finally:
            # A paused job may already be running again under a new token
            if self._tokens.get(job.id) is token:
                del self._tokens[job.id]
                self._registry.release(job.id)
                self._tracker.forget(job.id)
                await self._persistence.save(job)
                if job.status.is_terminal:
                    self._persistence.forget(job.id)
            if self._tasks.get(job.id) is asyncio.current_task():
                del self._tasks[job.id]
            self._drain_queue()

    def _requeue_for_retry(self, job_id: str) -> None:
        job = self._registry.get(job_id)
        if job is None or job.status != JobStatus.FAILED:
            return
        job.status = JobStatus.PENDING
        self._registry.enqueue(job_id)
        self._spawn(self._persistence.save(job))
        self._drain_queue()

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
