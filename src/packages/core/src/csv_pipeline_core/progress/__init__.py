"""Progress tracking."""
from csv_pipeline_core.progress.tracker import (
    CountThrottle,
    PROGRESS_POLICIES,
    ProgressSnapshot,
    ProgressTracker,
    ThrottlePolicy,
    TimeThrottle,
    make_throttle,
)

__all__ = [
    "CountThrottle",
    "PROGRESS_POLICIES",
    "ProgressSnapshot",
    "ProgressTracker",
    "ThrottlePolicy",
    "TimeThrottle",
    "make_throttle",
]
