"""Executors for each job type."""

from dutyjobs.jobs.executors.base import (
    BatchedProductExecutor,
    ExecutionContext,
    ExecutorRegistry,
    JobExecutor,
)
from dutyjobs.jobs.executors.classification import ClassificationExecutor
from dutyjobs.jobs.executors.data_transfer import DataExportExecutor, DataImportExecutor
from dutyjobs.jobs.executors.duty_optimization import DutyOptimizationExecutor
from dutyjobs.jobs.executors.fee_calculation import FeeCalculationExecutor
from dutyjobs.jobs.executors.scenario_analysis import ScenarioAnalysisExecutor
from dutyjobs.jobs.models import JobType
from dutyjobs.services.interfaces import (
    IClassificationService,
    IFeeCalculator,
    IOptimizationService,
    IScenarioService,
)


def build_executor_registry(
    classifier: IClassificationService,
    fee_calculator: IFeeCalculator,
    optimizer: IOptimizationService,
    scenarios: IScenarioService,
) -> ExecutorRegistry:
    """Wire the standard executor for every job type."""
    return ExecutorRegistry(
        {
            JobType.CLASSIFICATION: ClassificationExecutor(classifier),
            JobType.FEE_CALCULATION: FeeCalculationExecutor(fee_calculator),
            JobType.DUTY_OPTIMIZATION: DutyOptimizationExecutor(optimizer),
            JobType.SCENARIO_ANALYSIS: ScenarioAnalysisExecutor(scenarios),
            JobType.DATA_EXPORT: DataExportExecutor(),
            JobType.DATA_IMPORT: DataImportExecutor(),
        }
    )


__all__ = [
    "BatchedProductExecutor",
    "ClassificationExecutor",
    "DataExportExecutor",
    "DataImportExecutor",
    "DutyOptimizationExecutor",
    "ExecutionContext",
    "ExecutorRegistry",
    "FeeCalculationExecutor",
    "JobExecutor",
    "ScenarioAnalysisExecutor",
    "build_executor_registry",
]
