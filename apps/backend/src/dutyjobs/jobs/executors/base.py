"""Base classes for job executors."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any, ClassVar

from dutyjobs.errors import ConfigurationError, ExecutorError, JobValidationError
from dutyjobs.jobs.cancellation import CancellationToken
from dutyjobs.jobs.models import Job, JobType
from dutyjobs.jobs.progress import ProgressTracker
from dutyjobs.services.interfaces import IRecordStore

logger = logging.getLogger(__name__)


@dataclass
class ExecutionContext:
    """Shared resources handed to an executor for one run."""

    store: IRecordStore
    tracker: ProgressTracker
    batch_size: int


class JobExecutor(ABC):
    """Processing strategy for one job type.

    Executors must tolerate being re-run from the start after a crash or a
    retry; rows written by an earlier attempt may be written again.
    """

    job_type: ClassVar[JobType]

    def validate(self, metadata: Mapping[str, Any]) -> None:
        """Reject a submission that lacks required metadata.

        Raises:
            JobValidationError: If required metadata is missing.
        """

    @abstractmethod
    async def execute(
        self, job: Job, token: CancellationToken, context: ExecutionContext
    ) -> None:
        """Run the job until done or until ``token`` is cancelled.

        Per-item and per-batch failures are counted on ``job.progress``;
        anything raised from here is treated as fatal for this attempt.
        """
        ...


def require_list(metadata: Mapping[str, Any], key: str, label: str) -> None:
    value = metadata.get(key)
    if not isinstance(value, list):
        raise JobValidationError(f"{label} are required for this job")


def chunked(items: list[Any], size: int) -> Iterator[list[Any]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


class BatchedProductExecutor(JobExecutor):
    """Template for executors that process products batch by batch.

    Each batch fetches its products in one query, handles them in input
    order and ends with a single bulk write of the rows produced.
    """

    output_table: ClassVar[str]

    def validate(self, metadata: Mapping[str, Any]) -> None:
        require_list(metadata, "productIds", "Product IDs")

    @abstractmethod
    async def process_item(self, job: Job, product: dict[str, Any]) -> dict[str, Any]:
        """Handle one product and return the row to write for it."""
        ...

    async def execute(
        self, job: Job, token: CancellationToken, context: ExecutionContext
    ) -> None:
        if not isinstance(job.metadata.get("productIds"), list):
            raise ExecutorError(f"Job {job.id} has no product ids for {job.type.value}")

        for batch in chunked(pending_targets(job), context.batch_size):
            if token.cancelled:
                return
            try:
                products = await fetch_products(context.store, batch)
            except Exception:
                logger.warning("Batch fetch failed for job %s", job.id, exc_info=True)
                context.tracker.items_failed(job, len(batch))
                continue
            if token.cancelled:
                return

            by_id = {str(product["id"]): product for product in products}
            rows: list[dict[str, Any]] = []
            for product_id in map(str, batch):
                if token.cancelled:
                    break
                product = by_id.get(product_id)
                if product is None:
                    logger.warning("Job %s: product not found: %s", job.id, product_id)
                    context.tracker.items_failed(job)
                    continue
                context.tracker.set_current(job, product_id)
                try:
                    row = await self.process_item(job, product)
                except Exception as e:
                    if token.cancelled:
                        break
                    logger.warning(
                        "Job %s: %s failed for product %s: %s",
                        job.id, self.job_type.value, product_id, e,
                    )
                    context.tracker.items_failed(job)
                    continue
                if token.cancelled:
                    break
                rows.append(row)
                context.tracker.item_completed(job)

            # a paused run resumes after the items counted so far
            if token.cancelled and not token.paused:
                return
            await write_rows(context.store, self.output_table, rows, job)


def pending_targets(job: Job) -> list[str]:
    """Targets not yet counted in the current attempt."""
    return job.targets[job.progress.processed :]


async def fetch_products(store: IRecordStore, product_ids: list[str]) -> list[dict[str, Any]]:
    return await store.query("products", {"id": list(dict.fromkeys(product_ids))})


async def write_rows(
    store: IRecordStore, table: str, rows: list[dict[str, Any]], job: Job
) -> bool:
    """Bulk insert derived rows; failures are logged, never raised."""
    if not rows:
        return True
    try:
        await store.insert(table, rows)
    except Exception:
        logger.error("Job %s: failed to write %d rows to %s", job.id, len(rows), table, exc_info=True)
        return False
    return True


class ExecutorRegistry:
    """Maps every job type to its executor.

    Construction fails if any ``JobType`` lacks an executor, so adding a type
    without a handler is caught when the processor is built.
    """

    def __init__(self, executors: Mapping[JobType, JobExecutor]) -> None:
        missing = [t.value for t in JobType if t not in executors]
        if missing:
            raise ConfigurationError(f"No executor registered for: {', '.join(missing)}")
        for job_type, executor in executors.items():
            if executor.job_type is not job_type:
                raise ConfigurationError(
                    f"Executor {type(executor).__name__} handles {executor.job_type.value}, "
                    f"registered for {job_type.value}"
                )
        self._executors = dict(executors)

    def __getitem__(self, job_type: JobType) -> JobExecutor:
        return self._executors[job_type]

    def __iter__(self) -> Iterator[JobType]:
        return iter(self._executors)
