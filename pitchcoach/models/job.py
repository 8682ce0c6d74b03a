"""Evaluation job record and the uniform agent result type."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Generic, Literal, Optional, TypeVar

from pydantic import Field

from pitchcoach.models.request import (
    CamelModel,
    EvaluationRequest,
    EvaluationTarget,
    UploadedMedia,
)

JobStatus = Literal["queued", "running", "completed", "failed"]

# Lifecycle rank; a job's status never moves to a lower rank.
JOB_STATUS_ORDER: dict[str, int] = {
    "queued": 0,
    "running": 1,
    "completed": 2,
    "failed": 2,
}

T = TypeVar("T")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EvaluationJob(CamelModel):
    """One submitted evaluation tracked through its lifecycle.

    Attributes:
        id: Job identifier (UUID4 string)
        status: queued, running, completed or failed
        created_at: Submission time
        updated_at: Refreshed on every write
        target: Copy of the request target for listing without loading input
        input: The (possibly transcript-resolved) request
        media: Uploaded files stored for this job
        result_path: Where the report was persisted, once completed
        error: Stringified error, only when failed
    """

    id: str
    status: JobStatus = "queued"
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    target: EvaluationTarget = "full"
    input: EvaluationRequest
    media: Optional[list[UploadedMedia]] = None
    result_path: Optional[str] = None
    error: Optional[str] = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


@dataclass
class AgentResult(Generic[T]):
    """Outcome of one agent stage: ok with a payload, or error with a message."""

    status: Literal["ok", "error"]
    data: Optional[T] = None
    error: Optional[str] = None
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def success(cls, data: T, warnings: Optional[list[str]] = None) -> "AgentResult[T]":
        return cls(status="ok", data=data, warnings=list(warnings or []))

    @classmethod
    def failure(cls, error: str, warnings: Optional[list[str]] = None) -> "AgentResult[T]":
        return cls(status="error", error=error, warnings=list(warnings or []))

    @property
    def ok(self) -> bool:
        return self.status == "ok"
