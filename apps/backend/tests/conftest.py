"""Shared fakes and fixtures for dutyjobs tests."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from dutyjobs.config import ProcessorConfig
from dutyjobs.errors import CollaboratorError, PersistenceError
from dutyjobs.jobs.cancellation import CancellationToken
from dutyjobs.jobs.executors import build_executor_registry
from dutyjobs.jobs.executors.base import ExecutionContext, ExecutorRegistry, JobExecutor
from dutyjobs.jobs.models import Job, JobType
from dutyjobs.jobs.processor import BatchJobProcessor
from dutyjobs.services.interfaces import (
    ClassificationResult,
    FeeResult,
    Recommendation,
    ScenarioComparison,
)
from dutyjobs.services.record_store import InMemoryRecordStore


# ---------------------------------------------------------------------------
# Fake collaborators
# ---------------------------------------------------------------------------


class FakeClassifier:
    """Classifier that fails for selected product ids and can be held open.

    With ``gated`` set, only those ids wait on ``gate``.
    """

    def __init__(
        self,
        failing: set[str] | None = None,
        gate: asyncio.Event | None = None,
        delay: float = 0.0,
        gated: set[str] | None = None,
    ) -> None:
        self.failing = failing or set()
        self.gate = gate
        self.gated = gated
        self.delay = delay
        self.calls: list[str] = []

    async def classify(self, item: dict[str, Any]) -> ClassificationResult:
        self.calls.append(item["id"])
        if self.gate is not None and (self.gated is None or item["id"] in self.gated):
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if item["id"] in self.failing:
            raise CollaboratorError(f"cannot classify {item['id']}")
        return ClassificationResult(code="61091000", confidence_score=0.92)


class FakeFeeCalculator:
    def __init__(self) -> None:
        self.by_asin: list[str] = []
        self.by_dimensions: list[str] = []

    async def calculate(self, item: dict[str, Any]) -> FeeResult:
        self.by_dimensions.append(item["id"])
        return FeeResult(fee=4.5, breakdown={"weight": item.get("weight")})

    async def calculate_by_external_id(self, external_id: str) -> FeeResult:
        self.by_asin.append(external_id)
        return FeeResult(fee=3.25, breakdown={"asin": external_id})


class FakeOptimizer:
    def __init__(self, failing: set[str] | None = None) -> None:
        self.failing = failing or set()

    async def recommend(self, items: list[str]) -> list[Recommendation]:
        if items[0] in self.failing:
            raise CollaboratorError(f"no recommendation for {items[0]}")
        return [Recommendation(product_id=pid, potential_saving=12.0, confidence_score=0.8) for pid in items]


class FakeScenarios:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls = 0

    async def compare(self, params: dict[str, Any]) -> ScenarioComparison:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return ScenarioComparison(base_amount=100.0, alternative_amount=60.0, potential_saving=40.0)


class AlwaysFailingExecutor(JobExecutor):
    """Raises on every attempt."""

    job_type = JobType.CLASSIFICATION

    def __init__(self) -> None:
        self.attempts = 0

    async def execute(
        self, job: Job, token: CancellationToken, context: ExecutionContext
    ) -> None:
        self.attempts += 1
        raise RuntimeError(f"attempt {self.attempts} exploded")


class SpyRecordStore(InMemoryRecordStore):
    """Records every insert call."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.inserts: list[tuple[str, int]] = []
        self.fail_tables: set[str] = set()
        self.fail_queries: set[str] = set()

    async def insert(self, table: str, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        self.inserts.append((table, len(rows)))
        if table in self.fail_tables:
            raise PersistenceError(f"insert into {table} refused", table=table)
        return await super().insert(table, rows)

    async def update(self, table: str, record_id: str, fields: dict[str, Any]) -> None:
        if table in self.fail_tables:
            raise PersistenceError(f"update of {table} refused", table=table)
        await super().update(table, record_id, fields)

    async def query(self, table: str, filters: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        if table in self.fail_queries:
            raise PersistenceError(f"query of {table} refused", table=table)
        return await super().query(table, filters)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def make_products(*ids: str, **extra: Any) -> list[dict[str, Any]]:
    return [
        {"id": pid, "title": f"Product {pid}", "description": "cotton t-shirt", "workspace_id": "ws-1", **extra}
        for pid in ids
    ]


def make_registry(
    classifier: Any | None = None,
    fee_calculator: Any | None = None,
    optimizer: Any | None = None,
    scenarios: Any | None = None,
    **overrides: JobExecutor,
) -> ExecutorRegistry:
    registry = build_executor_registry(
        classifier=classifier or FakeClassifier(),
        fee_calculator=fee_calculator or FakeFeeCalculator(),
        optimizer=optimizer or FakeOptimizer(),
        scenarios=scenarios or FakeScenarios(),
    )
    executors = {job_type: registry[job_type] for job_type in registry}
    for executor in overrides.values():
        executors[executor.job_type] = executor
    return ExecutorRegistry(executors)


def make_processor(
    store: InMemoryRecordStore | None = None,
    registry: ExecutorRegistry | None = None,
    **config: Any,
) -> BatchJobProcessor:
    options = {"retry_delay": 0, **config}
    return BatchJobProcessor(
        registry or make_registry(),
        store if store is not None else SpyRecordStore(),
        config=ProcessorConfig(**options),
    )


@pytest.fixture
def store() -> SpyRecordStore:
    return SpyRecordStore({"products": make_products("A", "B", "C", "D")})
