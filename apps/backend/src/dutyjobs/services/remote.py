"""HTTP clients for the web application's domain endpoints."""

from __future__ import annotations

from typing import Any

import httpx

from dutyjobs.errors import CollaboratorError
from dutyjobs.services.interfaces import (
    ClassificationResult,
    FeeResult,
    Recommendation,
    ScenarioComparison,
)


class DutyApiClient:
    """Thin JSON-over-HTTP client shared by the remote collaborators."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}

    async def post(self, path: str, payload: dict[str, Any]) -> Any:
        async with httpx.AsyncClient(
            timeout=self.timeout, headers=self._headers, transport=self._transport
        ) as client:
            try:
                response = await client.post(f"{self.base_url}{path}", json=payload)
            except httpx.RequestError as e:
                raise CollaboratorError(f"Failed to reach {path}: {e}") from e

        if response.status_code != 200:
            raise CollaboratorError(f"{path} returned {response.status_code}: {response.text}")
        return response.json()


class RemoteClassificationService:
    def __init__(self, client: DutyApiClient) -> None:
        self._client = client

    async def classify(self, item: dict[str, Any]) -> ClassificationResult:
        data = await self._client.post(
            "/api/core/classify-hs",
            {
                "productId": item.get("id"),
                "productName": item.get("title"),
                "productDescription": item.get("description") or "",
            },
        )
        code = data.get("hsCode")
        if not code:
            raise CollaboratorError(f"No classification returned for {item.get('id')}")
        return ClassificationResult(code=code, confidence_score=float(data.get("confidenceScore", 0)))


class RemoteFeeCalculator:
    def __init__(self, client: DutyApiClient) -> None:
        self._client = client

    async def calculate(self, item: dict[str, Any]) -> FeeResult:
        data = await self._client.post(
            "/api/core/calculate-fba-fee",
            {
                "productId": item.get("id"),
                "dimensions": item.get("dimensions"),
                "weight": item.get("weight"),
                "category": item.get("category"),
            },
        )
        return _fee_result(data)

    async def calculate_by_external_id(self, external_id: str) -> FeeResult:
        data = await self._client.post("/api/amazon/calculate-fba-fees", {"asin": external_id})
        return _fee_result(data)


class RemoteOptimizationService:
    def __init__(self, client: DutyApiClient) -> None:
        self._client = client

    async def recommend(self, items: list[str]) -> list[Recommendation]:
        data = await self._client.post(
            "/api/duty/get-optimization-recommendations", {"productIds": list(items)}
        )
        return [
            Recommendation(
                product_id=str(rec.get("productId")),
                potential_saving=float(rec.get("potentialSaving") or 0),
                confidence_score=float(rec.get("confidenceScore") or 0),
                baseline_duty_rate=float(rec.get("currentDutyRate") or 0),
                optimized_duty_rate=float(rec.get("recommendedDutyRate") or 0),
                description=rec.get("description", ""),
            )
            for rec in data.get("data", [])
        ]


class RemoteScenarioService:
    def __init__(self, client: DutyApiClient) -> None:
        self._client = client

    async def compare(self, params: dict[str, Any]) -> ScenarioComparison:
        data = await self._client.post("/api/scenarios/compare", params)
        return ScenarioComparison(
            base_amount=float(data.get("baseDutyAmount", 0)),
            alternative_amount=float(data.get("alternativeDutyAmount", 0)),
            potential_saving=float(data.get("potentialSaving", 0)),
        )


def _fee_result(data: dict[str, Any]) -> FeeResult:
    fee = data.get("fbaFee")
    if fee is None:
        raise CollaboratorError("Fee calculator returned no fee")
    breakdown = {k: v for k, v in data.items() if k != "fbaFee"}
    return FeeResult(fee=float(fee), breakdown=breakdown)
