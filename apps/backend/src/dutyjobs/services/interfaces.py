"""Service interfaces (Protocols) for dutyjobs.

The batch processor never implements duty formulas or storage itself; it
drives these collaborators. Implementations live in the web application or,
for development and tests, in this package.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass
class ClassificationResult:
    """Tariff code proposed for a product."""

    code: str
    confidence_score: float


@dataclass
class FeeResult:
    """Fulfilment fee estimate."""

    fee: float
    breakdown: dict[str, Any] = field(default_factory=dict)


@dataclass
class Recommendation:
    """Duty optimization suggestion for one product."""

    product_id: str
    potential_saving: float = 0.0
    confidence_score: float = 0.0
    baseline_duty_rate: float = 0.0
    optimized_duty_rate: float = 0.0
    description: str = ""


@dataclass
class ScenarioComparison:
    """Duty amounts under a base and an alternative classification."""

    base_amount: float
    alternative_amount: float
    potential_saving: float


class IClassificationService(Protocol):
    """Interface for product classification."""

    async def classify(self, item: dict[str, Any]) -> ClassificationResult:
        """Classify a product.

        Args:
            item: Product row with at least ``id``, ``title`` and ``description``

        Returns:
            ClassificationResult with the tariff code and confidence

        Raises:
            Exception: Any failure; the caller counts the item as failed
        """
        ...


class IFeeCalculator(Protocol):
    """Interface for fulfilment fee calculation."""

    async def calculate(self, item: dict[str, Any]) -> FeeResult:
        """Estimate the fee from dimensions, weight and category."""
        ...

    async def calculate_by_external_id(self, external_id: str) -> FeeResult:
        """Look up the fee for a marketplace identifier (ASIN)."""
        ...


class IOptimizationService(Protocol):
    """Interface for duty optimization."""

    async def recommend(self, items: list[str]) -> list[Recommendation]:
        """Generate recommendations for the given product ids."""
        ...


class IScenarioService(Protocol):
    """Interface for classification scenario comparison."""

    async def compare(self, params: dict[str, Any]) -> ScenarioComparison:
        """Compare duty under a base and an alternative classification.

        Args:
            params: Scenario parameters (classification ids, destination
                country, product value, workspace id)

        Returns:
            ScenarioComparison with both amounts and the potential saving
        """
        ...


class IRecordStore(Protocol):
    """Interface for the durable record store.

    Used both for job persistence and for derived domain records. Each call
    commits independently.
    """

    async def insert(self, table: str, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Insert rows and return them as stored."""
        ...

    async def update(self, table: str, record_id: str, fields: dict[str, Any]) -> None:
        """Update one row by id.

        Raises:
            PersistenceError: If the row does not exist or the write fails
        """
        ...

    async def query(
        self, table: str, filters: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """Return rows matching every filter.

        A list value matches any of its elements; any other value must be
        equal.
        """
        ...
