"""Job and Result records exchanged between the pool and its executors."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from numbers import Real
from typing import Any


class ResultStatus(str, Enum):
    """Outcome of a single job."""

    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class Job:
    """One unit of work.

    ``id`` identifies the job (the file path for the built-in transforms) and
    ``payload`` carries whatever the work function needs. Both must be
    picklable so the job can be sent to a worker process.
    """

    id: str
    payload: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id:
            raise ValueError("Job id must be a non-empty string")
        # Own a private copy so later changes to the caller's dict are not seen
        object.__setattr__(self, "payload", dict(self.payload))


@dataclass(frozen=True, slots=True)
class Result:
    """Structured outcome of one job, produced exactly once per job."""

    job_id: str
    status: ResultStatus
    metrics: Mapping[str, float] = field(default_factory=dict)
    failure_reason: str | None = None

    def __post_init__(self) -> None:
        status = ResultStatus(self.status)
        object.__setattr__(self, "status", status)

        metrics = dict(self.metrics)
        for name, value in metrics.items():
            if not isinstance(name, str):
                raise ValueError(f"Metric names must be strings, got {name!r}")
            if isinstance(value, bool) or not isinstance(value, Real):
                raise ValueError(f"Metric '{name}' must be a number, got {value!r}")
        object.__setattr__(self, "metrics", metrics)

        if status is ResultStatus.SUCCEEDED:
            if self.failure_reason:
                raise ValueError("A succeeded result cannot carry a failure reason")
            object.__setattr__(self, "failure_reason", None)
        elif not self.failure_reason:
            raise ValueError(f"A {status.value} result requires a failure reason")

    @property
    def success(self) -> bool:
        return self.status is ResultStatus.SUCCEEDED

    @property
    def original_size(self) -> float:
        return self.metrics.get("original_size", 0)

    @property
    def transformed_size(self) -> float:
        return self.metrics.get("transformed_size", 0)

    @classmethod
    def succeeded(cls, job_id: str, **metrics: float) -> "Result":
        return cls(job_id=job_id, status=ResultStatus.SUCCEEDED, metrics=metrics)

    @classmethod
    def skipped(cls, job_id: str, reason: str, **metrics: float) -> "Result":
        return cls(
            job_id=job_id,
            status=ResultStatus.SKIPPED,
            metrics=metrics,
            failure_reason=reason,
        )

    @classmethod
    def failed(cls, job_id: str, reason: str, **metrics: float) -> "Result":
        return cls(
            job_id=job_id,
            status=ResultStatus.FAILED,
            metrics=metrics,
            failure_reason=reason,
        )

    def to_dict(self) -> dict[str, Any]:
        """Plain representation used by the YAML batch report."""
        return {
            "job_id": self.job_id,
            "status": self.status.value,
            "metrics": dict(self.metrics),
            "failure_reason": self.failure_reason,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Result":
        return cls(
            job_id=str(data["job_id"]),
            status=ResultStatus(data["status"]),
            metrics=dict(data.get("metrics") or {}),
            failure_reason=data.get("failure_reason"),
        )


__all__ = ["Job", "Result", "ResultStatus"]
