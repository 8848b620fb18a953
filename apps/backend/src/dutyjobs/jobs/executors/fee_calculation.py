"""Bulk fulfilment fee calculation."""

from __future__ import annotations

from typing import Any

from dutyjobs.jobs.executors.base import BatchedProductExecutor
from dutyjobs.jobs.models import Job, JobType
from dutyjobs.services.interfaces import FeeResult, IFeeCalculator


class FeeCalculationExecutor(BatchedProductExecutor):
    """Estimates fees by ASIN when known, otherwise from dimensions."""

    job_type = JobType.FEE_CALCULATION
    output_table = "fee_estimates"

    def __init__(self, calculator: IFeeCalculator) -> None:
        self._calculator = calculator

    async def process_item(self, job: Job, product: dict[str, Any]) -> dict[str, Any]:
        asin = product.get("asin")
        result: FeeResult
        if asin:
            result = await self._calculator.calculate_by_external_id(str(asin))
            method = "asin"
        else:
            result = await self._calculator.calculate(product)
            method = "dimensions"
        return {
            "product_id": product["id"],
            "fba_fee_estimate_usd": result.fee,
            "breakdown": result.breakdown,
            "calculation_method": method,
            "workspace_id": product.get("workspace_id") or job.workspace_id,
            "job_id": job.id,
        }
