"""Services module for dutyjobs."""

from dutyjobs.services.interfaces import (
    ClassificationResult,
    FeeResult,
    IClassificationService,
    IFeeCalculator,
    IOptimizationService,
    IRecordStore,
    IScenarioService,
    Recommendation,
    ScenarioComparison,
)
from dutyjobs.services.postgrest import PostgrestRecordStore
from dutyjobs.services.record_store import InMemoryRecordStore

__all__ = [
    "ClassificationResult",
    "FeeResult",
    "IClassificationService",
    "IFeeCalculator",
    "IOptimizationService",
    "IRecordStore",
    "IScenarioService",
    "InMemoryRecordStore",
    "PostgrestRecordStore",
    "Recommendation",
    "ScenarioComparison",
]
