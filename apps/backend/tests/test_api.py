"""Tests for the HTTP API."""

import time

import pytest
from fastapi.testclient import TestClient

from dutyjobs import __version__
from dutyjobs.main import create_app

from conftest import FakeClassifier, SpyRecordStore, make_processor, make_products, make_registry


def _wait_for(client: TestClient, job_id: str, status: str, timeout: float = 2.0) -> dict:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        body = client.get(f"/api/v1/jobs/{job_id}").json()
        if body["status"] == status:
            return body
        time.sleep(0.01)
    raise AssertionError(f"job {job_id} never reached {status}")


@pytest.fixture
def client():
    store = SpyRecordStore({"products": make_products("A", "B", "C")})
    proc = make_processor(
        store,
        registry=make_registry(classifier=FakeClassifier(delay=0.5)),
        max_concurrent_jobs=1,
    )
    with TestClient(create_app(processor=proc)) as test_client:
        yield test_client


@pytest.fixture
def fast_client():
    store = SpyRecordStore({"products": make_products("A", "B", "C")})
    with TestClient(create_app(processor=make_processor(store))) as test_client:
        yield test_client


class TestHealth:
    def test_health(self, fast_client: TestClient) -> None:
        response = fast_client.get("/health")
        assert response.status_code == 200
        assert response.json() == {
            "status": "healthy",
            "version": __version__,
            "processor": "running",
            "running_jobs": 0,
            "pending_jobs": 0,
        }

    def test_health_counts_running_and_queued_jobs(self, client: TestClient) -> None:
        for _ in range(2):
            client.post("/api/v1/jobs", json={"type": "classification", "metadata": {"productIds": ["A"]}})

        body = client.get("/health").json()

        assert body["processor"] == "running"
        assert body["running_jobs"] == 1
        assert body["pending_jobs"] == 1


class TestCreateJob:
    def test_create_and_complete(self, fast_client: TestClient) -> None:
        response = fast_client.post(
            "/api/v1/jobs",
            json={"type": "classification", "metadata": {"productIds": ["A", "B"]}, "priority": "high"},
        )

        assert response.status_code == 202
        created = response.json()
        assert created["type"] == "classification"
        assert created["status"] in ("pending", "running")

        body = _wait_for(fast_client, created["job_id"], "completed")
        assert body["priority"] == "high"
        assert body["progress"]["total"] == 2
        assert body["progress"]["completed"] == 2
        assert body["progress"]["percentage"] == 100
        assert body["timestamps"]["started"] is not None
        assert body["metadata"]["retryCount"] == 0
        assert body["error"] is None

    def test_missing_metadata_rejected(self, fast_client: TestClient) -> None:
        response = fast_client.post("/api/v1/jobs", json={"type": "classification"})
        assert response.status_code == 422
        assert "Product IDs" in response.json()["detail"]

    def test_unknown_type_rejected(self, fast_client: TestClient) -> None:
        response = fast_client.post("/api/v1/jobs", json={"type": "translation"})
        assert response.status_code == 422

    def test_export_job(self, fast_client: TestClient) -> None:
        response = fast_client.post(
            "/api/v1/jobs", json={"type": "data_export", "metadata": {"exportFormat": "json"}}
        )
        body = _wait_for(fast_client, response.json()["job_id"], "completed")
        assert body["metadata"]["recordCount"] == 3
        assert body["progress"]["percentage"] == 100


class TestQueryJobs:
    def test_unknown_job(self, fast_client: TestClient) -> None:
        assert fast_client.get("/api/v1/jobs/batch_missing").status_code == 404
        assert fast_client.post("/api/v1/jobs/batch_missing/pause").status_code == 404
        assert fast_client.post("/api/v1/jobs/batch_missing/rerun").status_code == 404

    def test_list_with_filters(self, fast_client: TestClient) -> None:
        export_id = fast_client.post(
            "/api/v1/jobs",
            json={"type": "data_export", "metadata": {"workspaceId": "ws-7"}, "priority": "low"},
        ).json()["job_id"]
        fast_client.post(
            "/api/v1/jobs", json={"type": "classification", "metadata": {"productIds": ["A"]}}
        )

        assert len(fast_client.get("/api/v1/jobs").json()) == 2
        by_type = fast_client.get("/api/v1/jobs", params={"type": "data_export"}).json()
        assert [j["job_id"] for j in by_type] == [export_id]
        by_workspace = fast_client.get("/api/v1/jobs", params={"workspace_id": "ws-7"}).json()
        assert [j["job_id"] for j in by_workspace] == [export_id]
        assert fast_client.get("/api/v1/jobs", params={"priority": "urgent"}).json() == []

    def test_invalid_filter(self, fast_client: TestClient) -> None:
        assert fast_client.get("/api/v1/jobs", params={"status": "sleeping"}).status_code == 422

    def test_queue_status(self, client: TestClient) -> None:
        for _ in range(3):
            client.post("/api/v1/jobs", json={"type": "classification", "metadata": {"productIds": ["A"]}})

        body = client.get("/api/v1/jobs/queue").json()
        assert body["running_count"] == 1
        assert body["pending_count"] == 2
        assert body["max_concurrent"] == 1
        assert body["total_jobs"] == 3
        assert body["poll_interval_ms"] == 500


class TestControlJobs:
    def _submit(self, client: TestClient) -> str:
        response = client.post(
            "/api/v1/jobs", json={"type": "classification", "metadata": {"productIds": ["A", "B"]}}
        )
        return response.json()["job_id"]

    def test_pause_resume_cancel(self, client: TestClient) -> None:
        running_id = self._submit(client)
        queued_id = self._submit(client)

        response = client.post(f"/api/v1/jobs/{queued_id}/pause")
        assert response.status_code == 409
        assert "pending" in response.json()["detail"]

        response = client.post(f"/api/v1/jobs/{running_id}/pause")
        assert response.status_code == 200
        assert response.json() == {"job_id": running_id, "status": "paused", "message": "Job paused"}

        response = client.post(f"/api/v1/jobs/{queued_id}/cancel")
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        assert response.json()["message"] == "Job cancelled"
        assert client.post(f"/api/v1/jobs/{queued_id}/cancel").status_code == 409

        response = client.post(f"/api/v1/jobs/{running_id}/resume")
        assert response.status_code == 200
        assert response.json()["message"] == "Job resumed"
        assert client.post(f"/api/v1/jobs/{running_id}/resume").status_code == 409

    def test_rerun(self, client: TestClient) -> None:
        running_id = self._submit(client)
        queued_id = self._submit(client)

        response = client.post(f"/api/v1/jobs/{running_id}/rerun")
        assert response.status_code == 409
        assert "Only dead_letter or cancelled jobs can be rerun" in response.json()["detail"]

        client.post(f"/api/v1/jobs/{queued_id}/cancel")
        response = client.post(f"/api/v1/jobs/{queued_id}/rerun")
        assert response.status_code == 202
        body = response.json()
        assert body["original_job_id"] == queued_id
        assert body["job_id"] != queued_id

        rerun = client.get(f"/api/v1/jobs/{body['job_id']}").json()
        assert rerun["metadata"]["parameters"] == {"originalJobId": queued_id, "rerunAttempt": 1}
        assert rerun["metadata"]["productIds"] == ["A", "B"]
