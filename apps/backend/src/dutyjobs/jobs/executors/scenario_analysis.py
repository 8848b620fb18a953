"""Single-step classification scenario comparison."""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any

from dutyjobs.errors import ExecutorError, JobValidationError
from dutyjobs.jobs.cancellation import CancellationToken
from dutyjobs.jobs.executors.base import ExecutionContext, JobExecutor, write_rows
from dutyjobs.jobs.models import Job, JobType
from dutyjobs.services.interfaces import IScenarioService


class ScenarioAnalysisExecutor(JobExecutor):
    job_type = JobType.SCENARIO_ANALYSIS

    def __init__(self, scenarios: IScenarioService) -> None:
        self._scenarios = scenarios

    def validate(self, metadata: dict[str, Any]) -> None:
        if not isinstance(metadata.get("scenarioParams"), dict):
            raise JobValidationError("Scenario parameters are required for scenario analysis")

    async def execute(
        self, job: Job, token: CancellationToken, context: ExecutionContext
    ) -> None:
        params = job.metadata.get("scenarioParams")
        if not isinstance(params, dict):
            raise ExecutorError(f"Job {job.id} has no scenario parameters")
        if token.cancelled:
            return

        context.tracker.set_current(job, "scenario")
        result = await self._scenarios.compare(params)
        if token.cancelled:
            return

        row = {
            "workspace_id": params.get("workspaceId") or job.workspace_id,
            "name": f"Analysis {datetime.now(timezone.utc).isoformat()}",
            "description": "Automated scenario analysis",
            "base_classification_id": params.get("baseClassificationId"),
            "alternative_classification_id": params.get("alternativeClassificationId"),
            "destination_country": params.get("destinationCountry"),
            "product_value": params.get("productValue"),
            "base_duty_amount": result.base_amount,
            "alternative_duty_amount": result.alternative_amount,
            "potential_saving": result.potential_saving,
            "status": "completed",
            "job_id": job.id,
        }
        job.metadata["analysisResult"] = asdict(result)
        if await write_rows(context.store, "duty_scenarios", [row], job):
            context.tracker.item_completed(job)
        else:
            context.tracker.items_failed(job)
