"""Job management module."""
from csv_pipeline_core.jobs.models import (
    Job,
    JobRowError,
    JobState,
    JobStatus,
    StatusVocabulary,
    TERMINAL_STATES,
)
from csv_pipeline_core.jobs.repo import JobStore
from csv_pipeline_core.jobs.state import JobStateMachine, completion_state

__all__ = [
    "Job",
    "JobRowError",
    "JobState",
    "JobStatus",
    "StatusVocabulary",
    "TERMINAL_STATES",
    "JobStore",
    "JobStateMachine",
    "completion_state",
]
