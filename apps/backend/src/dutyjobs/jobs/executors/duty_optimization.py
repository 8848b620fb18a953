"""Duty optimization across a set of products."""

from __future__ import annotations

import logging
from typing import Any
from uuid import uuid4

from dutyjobs.errors import ExecutorError
from dutyjobs.jobs.cancellation import CancellationToken
from dutyjobs.jobs.executors.base import (
    ExecutionContext,
    JobExecutor,
    pending_targets,
    require_list,
    write_rows,
)
from dutyjobs.jobs.models import Job, JobType
from dutyjobs.services.interfaces import IOptimizationService, Recommendation

logger = logging.getLogger(__name__)


class DutyOptimizationExecutor(JobExecutor):
    """Collects savings recommendations and writes them in one bulk insert."""

    job_type = JobType.DUTY_OPTIMIZATION

    def __init__(self, optimizer: IOptimizationService) -> None:
        self._optimizer = optimizer

    def validate(self, metadata: dict[str, Any]) -> None:
        require_list(metadata, "productIds", "Product IDs")

    async def execute(
        self, job: Job, token: CancellationToken, context: ExecutionContext
    ) -> None:
        if not isinstance(job.metadata.get("productIds"), list):
            raise ExecutorError(f"Job {job.id} has no product ids for {job.type.value}")

        targets = pending_targets(job)
        carried = job.metadata.get("recommendationCount", 0) if len(targets) < len(job.targets) else 0
        savings: list[dict[str, Any]] = []
        for product_id in targets:
            if token.cancelled:
                break
            context.tracker.set_current(job, str(product_id))
            try:
                recommendations = await self._optimizer.recommend([product_id])
            except Exception as e:
                if token.cancelled:
                    break
                logger.warning("Job %s: optimization failed for %s: %s", job.id, product_id, e)
                context.tracker.items_failed(job)
                continue
            if token.cancelled:
                break
            savings.extend(self._savings_row(job, rec) for rec in recommendations)
            context.tracker.item_completed(job)

        if token.cancelled and not token.paused:
            return
        await write_rows(context.store, "savings_ledger", savings, job)
        job.metadata["recommendationCount"] = carried + len(savings)

    @staticmethod
    def _savings_row(job: Job, rec: Recommendation) -> dict[str, Any]:
        return {
            "product_id": rec.product_id,
            "workspace_id": job.workspace_id or "",
            "savings_amount": rec.potential_saving,
            "savings_percentage": rec.confidence_score,
            "baseline_duty_rate": rec.baseline_duty_rate,
            "optimized_duty_rate": rec.optimized_duty_rate,
            "calculation_id": f"opt_{uuid4().hex[:12]}",
            "job_id": job.id,
        }
