"""Job models."""
from enum import Enum
from typing import Any

from pydantic import BaseModel

from csv_pipeline_core.util.errors import ValidationError


class JobState(str, Enum):
    """Lifecycle states of a job."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    COMPLETED_WITH_ERRORS = "COMPLETED_WITH_ERRORS"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset(
    {JobState.COMPLETED, JobState.COMPLETED_WITH_ERRORS, JobState.FAILED}
)


class StatusVocabulary:
    """Maps job states to the status labels persisted in the store.

    Two label sets exist: ``standard`` (COMPLETED / COMPLETED_WITH_ERRORS /
    FAILED) and ``legacy`` (DONE / DONE_WITH_ERRORS / ERROR). A deployment
    writes exactly one of them; reading accepts both.
    """

    LABELS: dict[str, dict[JobState, str]] = {
        "standard": {state: state.value for state in JobState},
        "legacy": {
            JobState.PENDING: "PENDING",
            JobState.PROCESSING: "PROCESSING",
            JobState.COMPLETED: "DONE",
            JobState.COMPLETED_WITH_ERRORS: "DONE_WITH_ERRORS",
            JobState.FAILED: "ERROR",
        },
    }

    def __init__(self, name: str = "standard"):
        if name not in self.LABELS:
            raise ValidationError(
                f"Unknown status vocabulary: {name} (expected one of {sorted(self.LABELS)})"
            )
        self.name = name
        self._labels = self.LABELS[name]

    def label(self, state: JobState) -> str:
        """Status label to persist for a state."""
        return self._labels[state]

    def labels_for(self, *states: JobState) -> list[str]:
        return [self._labels[s] for s in states]

    @classmethod
    def parse(cls, label: str) -> JobState:
        """Resolve a persisted label from either vocabulary."""
        for labels in cls.LABELS.values():
            for state, text in labels.items():
                if text == label:
                    return state
        raise ValidationError(f"Unknown job status label: {label}")


class Job(BaseModel):
    """A job record."""

    job_id: str
    filename: str
    filepath: str
    status: JobState
    total_rows: int = 0
    processed_rows: int = 0
    error_rows: int = 0
    error_message: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    finished_at: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Job":
        data = dict(row)
        data["status"] = StatusVocabulary.parse(data["status"])
        return cls(**data)


class JobRowError(BaseModel):
    """A failed row recorded against a job."""

    job_id: str
    line_number: int
    error_message: str
    raw_row: str | None = None
    created_at: str | None = None


class JobStatus(BaseModel):
    """Job status response."""

    job_id: str
    filename: str
    status: str
    total_rows: int
    processed_rows: int
    error_rows: int
    error_message: str | None = None
    created_at: str | None = None
    finished_at: str | None = None

    @classmethod
    def from_job(cls, job: Job, vocabulary: StatusVocabulary) -> "JobStatus":
        return cls(
            job_id=job.job_id,
            filename=job.filename,
            status=vocabulary.label(job.status),
            total_rows=job.total_rows,
            processed_rows=job.processed_rows,
            error_rows=job.error_rows,
            error_message=job.error_message,
            created_at=job.created_at,
            finished_at=job.finished_at,
        )
