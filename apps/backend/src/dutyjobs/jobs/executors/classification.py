"""Bulk product classification."""

from __future__ import annotations

from typing import Any

from dutyjobs.jobs.executors.base import BatchedProductExecutor
from dutyjobs.jobs.models import Job, JobType
from dutyjobs.services.interfaces import IClassificationService


class ClassificationExecutor(BatchedProductExecutor):
    """Classifies each product and buffers one classification row per item."""

    job_type = JobType.CLASSIFICATION
    output_table = "classifications"

    def __init__(self, classifier: IClassificationService) -> None:
        self._classifier = classifier

    async def process_item(self, job: Job, product: dict[str, Any]) -> dict[str, Any]:
        result = await self._classifier.classify(product)
        code = result.code or ""
        return {
            "product_id": product["id"],
            "hs6": code[:6],
            "hs8": code,
            "confidence_score": result.confidence_score,
            "classification_method": "ai_batch",
            "workspace_id": product.get("workspace_id") or job.workspace_id,
            "job_id": job.id,
        }
