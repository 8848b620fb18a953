"""Job domain models."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    """Status of a job."""

    PENDING = "pending"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    DEAD_LETTER = "dead_letter"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {JobStatus.COMPLETED, JobStatus.CANCELLED, JobStatus.DEAD_LETTER}
)

# Statuses reloaded from the record store on startup
RECOVERABLE_STATUSES = (JobStatus.PENDING, JobStatus.RUNNING, JobStatus.PAUSED)


class JobType(str, Enum):
    """Type of job."""

    CLASSIFICATION = "classification"
    FEE_CALCULATION = "fee_calculation"
    DATA_EXPORT = "data_export"
    DATA_IMPORT = "data_import"
    DUTY_OPTIMIZATION = "duty_optimization"
    SCENARIO_ANALYSIS = "scenario_analysis"


class JobPriority(str, Enum):
    """Submission-time priority tier."""

    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Queue rank; lower dispatches first."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK: dict[JobPriority, int] = {
    JobPriority.URGENT: 0,
    JobPriority.HIGH: 1,
    JobPriority.MEDIUM: 2,
    JobPriority.LOW: 3,
}

# metadata key holding the items each job type iterates over
TARGET_KEYS: dict[JobType, str] = {
    JobType.CLASSIFICATION: "productIds",
    JobType.FEE_CALCULATION: "productIds",
    JobType.DUTY_OPTIMIZATION: "productIds",
    JobType.DATA_EXPORT: "productIds",
    JobType.DATA_IMPORT: "importData",
}


@dataclass
class JobProgress:
    """Item-level progress of a job."""

    total: int = 0
    completed: int = 0
    failed: int = 0
    current: str | None = None
    percentage: int = 0

    @property
    def processed(self) -> int:
        return self.completed + self.failed

    @property
    def remaining(self) -> int:
        return max(self.total - self.processed, 0)

    def recompute(self) -> None:
        """Refresh ``percentage`` from the counters."""
        if self.total > 0:
            self.percentage = round(100 * self.processed / self.total)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "total": self.total,
            "completed": self.completed,
            "failed": self.failed,
            "percentage": self.percentage,
        }
        if self.current is not None:
            data["current"] = self.current
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> JobProgress:
        data = data or {}
        return cls(
            total=int(data.get("total", 0)),
            completed=int(data.get("completed", 0)),
            failed=int(data.get("failed", 0)),
            current=data.get("current"),
            percentage=int(data.get("percentage", 0)),
        )


@dataclass
class JobTimestamps:
    """Lifecycle timestamps. Each optional stamp is written at most once."""

    created: datetime = field(default_factory=_utcnow)
    started: datetime | None = None
    paused: datetime | None = None
    resumed: datetime | None = None
    completed: datetime | None = None

    def stamp(self, name: str) -> None:
        if name == "created":
            raise ValueError("created is set at construction")
        if getattr(self, name) is None:
            setattr(self, name, _utcnow())

    def to_dict(self) -> dict[str, str | None]:
        return {
            "created": self.created.isoformat(),
            "started": _iso(self.started),
            "paused": _iso(self.paused),
            "resumed": _iso(self.resumed),
            "completed": _iso(self.completed),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> JobTimestamps:
        data = data or {}
        created = _parse(data.get("created"))
        return cls(
            created=created or _utcnow(),
            started=_parse(data.get("started")),
            paused=_parse(data.get("paused")),
            resumed=_parse(data.get("resumed")),
            completed=_parse(data.get("completed")),
        )


@dataclass
class JobError:
    """Terminal failure details."""

    message: str
    code: str
    details: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "code": self.code, "details": self.details}

    @classmethod
    def from_exception(cls, exc: BaseException, details: str | None = None) -> JobError:
        return cls(message=str(exc) or type(exc).__name__, code=type(exc).__name__, details=details)


@dataclass
class Job:
    """A unit of background work tracked through the status state machine."""

    type: JobType
    priority: JobPriority = JobPriority.MEDIUM
    id: str = field(default_factory=lambda: f"batch_{uuid4().hex}")
    status: JobStatus = JobStatus.PENDING
    progress: JobProgress = field(default_factory=JobProgress)
    metadata: dict[str, Any] = field(default_factory=dict)
    timestamps: JobTimestamps = field(default_factory=JobTimestamps)
    error: JobError | None = None

    @property
    def workspace_id(self) -> str | None:
        return self.metadata.get("workspaceId")

    @property
    def retry_count(self) -> int:
        return int(self.metadata.get("retryCount", 0))

    @property
    def max_retries(self) -> int:
        return int(self.metadata.get("maxRetries", 0))

    @property
    def targets(self) -> list[Any]:
        """Items this job iterates over, empty if the type has none."""
        key = TARGET_KEYS.get(self.type)
        if key is None:
            return []
        items = self.metadata.get(key)
        return list(items) if isinstance(items, list) else []

    def snapshot(self) -> Job:
        """Detached copy, safe to hand to observers."""
        return replace(
            self,
            progress=replace(self.progress),
            metadata=dict(self.metadata),
            timestamps=replace(self.timestamps),
            error=replace(self.error) if self.error else None,
        )

    def to_record(self) -> dict[str, Any]:
        """Row shape stored in the ``jobs`` table."""
        return {
            "id": self.id,
            "type": self.type.value,
            "status": self.status.value,
            "priority": self.priority.value,
            "workspace_id": self.workspace_id or "default-workspace",
            "parameters": {
                **self.metadata,
                "progress": self.progress.to_dict(),
                "timestamps": self.timestamps.to_dict(),
                "error": self.error.to_dict() if self.error else None,
            },
            "progress": self.progress.percentage,
            "error": self.error.message if self.error else None,
            "created_at": self.timestamps.created.isoformat(),
            "started_at": _iso(self.timestamps.started),
            "completed_at": _iso(self.timestamps.completed),
            "updated_at": _utcnow().isoformat(),
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Job:
        """Rebuild a job from a ``jobs`` row written by :meth:`to_record`."""
        params = dict(record.get("parameters") or {})
        progress = JobProgress.from_dict(params.pop("progress", None))
        raw_timestamps = params.pop("timestamps", None) or {
            "created": record.get("created_at"),
            "started": record.get("started_at"),
            "completed": record.get("completed_at"),
        }
        timestamps = JobTimestamps.from_dict(raw_timestamps)
        raw_error = params.pop("error", None)
        error = JobError(**raw_error) if isinstance(raw_error, dict) else None
        priority = params.pop("priority", None)
        priority = record.get("priority") or priority or JobPriority.MEDIUM.value
        return cls(
            id=str(record["id"]),
            type=JobType(record["type"]),
            status=JobStatus(record["status"]),
            priority=JobPriority(priority),
            progress=progress,
            metadata=params,
            timestamps=timestamps,
            error=error,
        )


@dataclass
class ProgressUpdate:
    """Payload of a ``progressUpdate`` event."""

    job_id: str
    progress: JobProgress
    status: JobStatus
    current_item: str | None = None
    estimated_time_remaining: float | None = None  # seconds


@dataclass
class QueueStatus:
    """Snapshot of the scheduler's admission state."""

    pending_count: int
    running_count: int
    max_concurrent: int
    total_jobs: int


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
