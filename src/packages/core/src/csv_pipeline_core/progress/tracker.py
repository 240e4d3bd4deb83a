"""Row counters and throttled progress snapshots."""
import time
from abc import ABC, abstractmethod
from typing import Callable

from pydantic import BaseModel

from csv_pipeline_core.util.errors import ValidationError

PROGRESS_POLICIES = ("time", "count")


class ProgressSnapshot(BaseModel):
    """Point-in-time view of a run's progress."""

    processed: int
    errors: int
    total: int
    elapsed_seconds: float
    rows_per_second: float
    eta_seconds: float | None
    percent: float
    final: bool = False


class ThrottlePolicy(ABC):
    """Decides whether a progress snapshot is due."""

    @abstractmethod
    def ready(self, now: float, rows_seen: int) -> bool:
        pass


class TimeThrottle(ThrottlePolicy):
    """At most one snapshot per ``interval_seconds``."""

    def __init__(self, interval_seconds: float = 1.0, started_at: float = 0.0):
        if interval_seconds <= 0:
            raise ValidationError("Progress interval must be positive")
        self.interval_seconds = interval_seconds
        self._last = started_at

    def reset(self, started_at: float) -> None:
        self._last = started_at

    def ready(self, now: float, rows_seen: int) -> bool:
        if now - self._last >= self.interval_seconds:
            self._last = now
            return True
        return False


class CountThrottle(ThrottlePolicy):
    """One snapshot every ``every_rows`` rows."""

    def __init__(self, every_rows: int = 1000):
        if every_rows <= 0:
            raise ValidationError("Progress row interval must be positive")
        self.every_rows = every_rows

    def ready(self, now: float, rows_seen: int) -> bool:
        return rows_seen > 0 and rows_seen % self.every_rows == 0


def make_throttle(
    policy: str, interval_seconds: float = 1.0, every_rows: int = 1000
) -> ThrottlePolicy:
    """Build the throttle for a progress policy name (``time`` or ``count``)."""
    if policy == "time":
        return TimeThrottle(interval_seconds)
    if policy == "count":
        return CountThrottle(every_rows)
    raise ValidationError(
        f"Unknown progress policy: {policy} (expected one of {list(PROGRESS_POLICIES)})"
    )


class ProgressTracker:
    """Counts row outcomes for one run and emits throttled snapshots.

    ``record_success`` and ``record_error`` return a snapshot when the
    throttle says a progress write is due, otherwise None. ``final_snapshot``
    ignores the throttle so the last reported progress is always the end
    state.
    """

    def __init__(
        self,
        throttle: ThrottlePolicy,
        total: int = 0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.throttle = throttle
        self.total = max(0, total)
        self.processed = 0
        self.errors = 0
        self._clock = clock
        self.started_at = clock()
        if isinstance(throttle, TimeThrottle):
            throttle.reset(self.started_at)

    @property
    def rows_seen(self) -> int:
        return self.processed + self.errors

    def set_total(self, total: int) -> None:
        self.total = max(0, total)

    def record_success(self) -> ProgressSnapshot | None:
        self.processed += 1
        return self._maybe_snapshot()

    def record_error(self) -> ProgressSnapshot | None:
        self.errors += 1
        return self._maybe_snapshot()

    def _maybe_snapshot(self) -> ProgressSnapshot | None:
        now = self._clock()
        if self.throttle.ready(now, self.rows_seen):
            return self._snapshot(now)
        return None

    def final_snapshot(self, total: int | None = None) -> ProgressSnapshot:
        """Unthrottled closing snapshot; ``total`` overrides the estimate."""
        if total is not None:
            self.set_total(total)
        return self._snapshot(self._clock(), final=True)

    def _snapshot(self, now: float, final: bool = False) -> ProgressSnapshot:
        elapsed = max(0.0, now - self.started_at)
        speed = self.processed / elapsed if elapsed > 0 else 0.0
        eta = None
        if speed > 0:
            eta = max(0.0, (self.total - self.processed) / speed)
        percent = min(100.0, self.processed / self.total * 100) if self.total > 0 else 0.0
        return ProgressSnapshot(
            processed=self.processed,
            errors=self.errors,
            total=self.total,
            elapsed_seconds=round(elapsed, 3),
            rows_per_second=round(speed, 2),
            eta_seconds=round(eta, 1) if eta is not None else None,
            percent=round(percent, 1),
            final=final,
        )
