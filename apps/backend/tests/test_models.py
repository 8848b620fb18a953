"""Tests for job data models."""

from datetime import datetime, timezone

import pytest

from dutyjobs.jobs.models import (
    Job,
    JobError,
    JobPriority,
    JobProgress,
    JobStatus,
    JobTimestamps,
    JobType,
)


class TestJobStatus:
    def test_terminal_statuses(self) -> None:
        assert JobStatus.COMPLETED.is_terminal
        assert JobStatus.CANCELLED.is_terminal
        assert JobStatus.DEAD_LETTER.is_terminal

    def test_failed_is_not_terminal(self) -> None:
        # a failed job may still be retried
        assert not JobStatus.FAILED.is_terminal
        assert not JobStatus.PAUSED.is_terminal


class TestJobPriority:
    def test_rank_order(self) -> None:
        ranks = [p.rank for p in (JobPriority.URGENT, JobPriority.HIGH, JobPriority.MEDIUM, JobPriority.LOW)]
        assert ranks == [0, 1, 2, 3]


class TestJobProgress:
    def test_recompute(self) -> None:
        progress = JobProgress(total=3, completed=1, failed=1)
        progress.recompute()
        assert progress.percentage == 67
        assert progress.processed == 2
        assert progress.remaining == 1

    def test_recompute_empty_total_keeps_percentage(self) -> None:
        progress = JobProgress(total=0)
        progress.recompute()
        assert progress.percentage == 0

    def test_current_omitted_when_unset(self) -> None:
        assert "current" not in JobProgress(total=2).to_dict()


class TestJobTimestamps:
    def test_stamp_once(self) -> None:
        ts = JobTimestamps()
        ts.stamp("started")
        first = ts.started
        ts.stamp("started")
        assert ts.started is first

    def test_created_cannot_be_restamped(self) -> None:
        with pytest.raises(ValueError):
            JobTimestamps().stamp("created")

    def test_from_dict_parses_zulu(self) -> None:
        ts = JobTimestamps.from_dict({"created": "2024-03-01T10:00:00Z"})
        assert ts.created == datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)
        assert ts.started is None


class TestJob:
    def test_defaults(self) -> None:
        job = Job(type=JobType.CLASSIFICATION)
        assert job.id.startswith("batch_")
        assert job.status == JobStatus.PENDING
        assert job.priority == JobPriority.MEDIUM
        assert job.error is None

    def test_targets(self) -> None:
        job = Job(type=JobType.DATA_IMPORT, metadata={"importData": [{"title": "x"}]})
        assert job.targets == [{"title": "x"}]
        scenario = Job(type=JobType.SCENARIO_ANALYSIS, metadata={"scenarioParams": {}})
        assert scenario.targets == []

    def test_snapshot_is_detached(self) -> None:
        job = Job(type=JobType.CLASSIFICATION, metadata={"productIds": ["A"]})
        snap = job.snapshot()
        job.progress.completed = 1
        job.metadata["retryCount"] = 2
        assert snap.progress.completed == 0
        assert "retryCount" not in snap.metadata

    def test_record_round_trip(self) -> None:
        job = Job(
            type=JobType.FEE_CALCULATION,
            priority=JobPriority.HIGH,
            status=JobStatus.DEAD_LETTER,
            metadata={"productIds": ["A", "B"], "workspaceId": "ws-1", "retryCount": 3},
            progress=JobProgress(total=2, completed=1, failed=1, percentage=100),
            error=JobError(message="boom", code="RuntimeError"),
        )
        job.timestamps.stamp("started")

        record = job.to_record()
        assert record["workspace_id"] == "ws-1"
        assert record["progress"] == 100
        assert record["error"] == "boom"

        restored = Job.from_record(record)
        assert restored.id == job.id
        assert restored.priority == JobPriority.HIGH
        assert restored.status == JobStatus.DEAD_LETTER
        assert restored.progress == job.progress
        assert restored.metadata == job.metadata
        assert restored.timestamps.started == job.timestamps.started
        assert restored.error == job.error

    def test_record_default_workspace(self) -> None:
        assert Job(type=JobType.DATA_EXPORT).to_record()["workspace_id"] == "default-workspace"

    def test_from_record_falls_back_to_columns(self) -> None:
        record = {
            "id": "job-1",
            "type": "classification",
            "status": "running",
            "priority": "low",
            "parameters": {"productIds": ["A"]},
            "created_at": "2024-01-01T00:00:00+00:00",
            "started_at": "2024-01-01T00:00:05+00:00",
        }
        job = Job.from_record(record)
        assert job.timestamps.created.year == 2024
        assert job.timestamps.started is not None
        assert job.progress.total == 0


class TestJobError:
    def test_from_exception(self) -> None:
        err = JobError.from_exception(KeyError("sku"))
        assert err.code == "KeyError"
        assert "sku" in err.message
