"""Row processing: hooks, per-row recording and the streaming job processor."""
from csv_pipeline_core.processing.hooks import RowHook, accept_row, load_hook, required_fields
from csv_pipeline_core.processing.recorder import RowOutcome, RowOutcomeRecorder
from csv_pipeline_core.processing.stream import FAULT_POLICIES, JobOutcome, JobRun, StreamProcessor

__all__ = [
    "RowHook",
    "accept_row",
    "load_hook",
    "required_fields",
    "RowOutcome",
    "RowOutcomeRecorder",
    "FAULT_POLICIES",
    "JobOutcome",
    "JobRun",
    "StreamProcessor",
]
