"""Streaming job processor.

Drives one job from a claimed queue message to a terminal state, then
settles that message. Rows are pulled from the loader one at a time and the
next row is requested only after the current row's hook and error write have
returned, so the file is never read ahead of row processing.
"""
import os
import time
from typing import Callable

import structlog
from pydantic import BaseModel

from csv_pipeline_core.ingest import loader_for_path, try_count_data_rows
from csv_pipeline_core.ingest.loaders import BaseLoader
from csv_pipeline_core.jobs.models import JobState
from csv_pipeline_core.jobs.repo import JobStore
from csv_pipeline_core.jobs.state import JobStateMachine, completion_state
from csv_pipeline_core.messaging.redis_queue import Delivery
from csv_pipeline_core.processing.hooks import RowHook, accept_row
from csv_pipeline_core.processing.recorder import (
    MAX_ERROR_MESSAGE_CHARS,
    RowOutcome,
    RowOutcomeRecorder,
)
from csv_pipeline_core.progress import ProgressSnapshot, ProgressTracker, make_throttle
from csv_pipeline_core.util.errors import MissingSourceError, ValidationError
from csv_pipeline_core.util.time import utc_now_iso

logger = structlog.get_logger()

FAULT_POLICIES = ("ack", "dead_letter", "requeue")


class JobOutcome(BaseModel):
    """Result of one processing run."""

    job_id: str
    state: JobState | None = None
    processed: int = 0
    errors: int = 0
    total: int = 0
    skipped: bool = False
    settlement: str | None = None
    error: str | None = None


class StreamProcessor:
    """Processes job messages against a store with a configured row hook."""

    def __init__(
        self,
        store: JobStore,
        hook: RowHook = accept_row,
        *,
        progress_policy: str = "time",
        progress_interval_seconds: float = 1.0,
        progress_every_rows: int = 1000,
        fault_policy: str = "ack",
        max_attempts: int = 3,
        loader: BaseLoader | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if fault_policy not in FAULT_POLICIES:
            raise ValidationError(
                f"Unknown fault policy: {fault_policy} (expected one of {list(FAULT_POLICIES)})"
            )
        # raises ValidationError for an unknown progress policy
        make_throttle(progress_policy, progress_interval_seconds, progress_every_rows)
        self.store = store
        self.hook = hook
        self.progress_policy = progress_policy
        self.progress_interval_seconds = progress_interval_seconds
        self.progress_every_rows = progress_every_rows
        self.fault_policy = fault_policy
        self.max_attempts = max_attempts
        self.loader = loader
        self.clock = clock

    def run(self, job_id: str, file_path: str, delivery: Delivery, attempt: int = 1) -> JobOutcome:
        """Process a job and settle ``delivery`` exactly once."""
        job = self.store.get_job(job_id)
        if job is None:
            logger.warning("job_not_found", job_id=job_id)
            delivery.ack()
            return JobOutcome(job_id=job_id, skipped=True, settlement=delivery.settled)

        # a FAILED job only runs again when the fault policy put its message back
        retry = job.status is JobState.FAILED and attempt > 1
        if job.status.is_terminal and not retry:
            logger.info("job_already_finished", job_id=job_id, status=job.status.value)
            delivery.ack()
            return JobOutcome(
                job_id=job_id,
                state=job.status,
                processed=job.processed_rows,
                errors=job.error_rows,
                total=job.total_rows,
                skipped=True,
                settlement=delivery.settled,
            )

        start = JobState.PENDING if retry else job.status
        run = JobRun(self, job_id, file_path, delivery, JobStateMachine(job_id, start), attempt)
        return run.execute()

    def new_tracker(self) -> ProgressTracker:
        throttle = make_throttle(
            self.progress_policy, self.progress_interval_seconds, self.progress_every_rows
        )
        return ProgressTracker(throttle, clock=self.clock)


class JobRun:
    """State for a single processing run of one job."""

    def __init__(
        self,
        processor: StreamProcessor,
        job_id: str,
        file_path: str,
        delivery: Delivery,
        machine: JobStateMachine,
        attempt: int = 1,
    ):
        self.processor = processor
        self.store = processor.store
        self.job_id = job_id
        self.file_path = file_path
        self.delivery = delivery
        self.machine = machine
        self.attempt = attempt
        self.tracker = processor.new_tracker()
        self.recorder = RowOutcomeRecorder(self.store, job_id, processor.hook)
        self.error: str | None = None
        self.log = logger.bind(job_id=job_id)

    def execute(self) -> JobOutcome:
        if not os.path.exists(self.file_path):
            error = str(MissingSourceError(self.file_path))
            self.log.error("source_missing", file_path=self.file_path)
            self.finalize(JobState.FAILED, error=error)
            return self.outcome()

        self.claim()
        try:
            loader = self.processor.loader or loader_for_path(self.file_path)
            rows = loader.iter_rows(self.file_path)
            for line_number, row in enumerate(rows, start=1):
                if self.recorder.process(line_number, row) is RowOutcome.OK:
                    snapshot = self.tracker.record_success()
                else:
                    snapshot = self.tracker.record_error()
                if snapshot is not None:
                    self.persist_progress(snapshot)
        except Exception as e:
            error = f"{e.__class__.__name__}: {e}"
            self.log.exception(
                "stream_fault",
                file_path=self.file_path,
                processed=self.tracker.processed,
                errors=self.tracker.errors,
                error=error,
            )
            self.finalize(JobState.FAILED, error=error, fault=True)
            return self.outcome()

        # the parser's full pass is the exact row count
        self.finalize(completion_state(self.tracker.errors), total=self.tracker.rows_seen)
        return self.outcome()

    def claim(self) -> None:
        self.machine.claim()
        total = try_count_data_rows(self.file_path)
        self.tracker.set_total(total)
        try:
            self.store.update_job(
                self.job_id,
                status=JobState.PROCESSING,
                total_rows=total,
                processed_rows=0,
                error_rows=0,
                error_message=None,
                finished_at=None,
            )
        except Exception as e:
            self.log.error("claim_persist_failed", error=str(e))
        self.log.info("job_claimed", file_path=self.file_path, total_rows=total, attempt=self.attempt)

    def persist_progress(self, snapshot: ProgressSnapshot) -> None:
        self.machine.transition(JobState.PROCESSING)
        self.log.info(
            "job_progress",
            percent=snapshot.percent,
            processed=snapshot.processed,
            errors=snapshot.errors,
            total=snapshot.total,
            rows_per_second=snapshot.rows_per_second,
            eta_seconds=snapshot.eta_seconds,
        )
        try:
            self.store.update_job(
                self.job_id,
                status=JobState.PROCESSING,
                processed_rows=snapshot.processed,
                error_rows=snapshot.errors,
            )
        except Exception as e:
            self.log.warning("progress_persist_failed", error=str(e))

    def finalize(
        self,
        state: JobState,
        *,
        error: str | None = None,
        total: int | None = None,
        fault: bool = False,
    ) -> bool:
        """Write the terminal state and final counters, then settle the message.

        Runs once per job run; later calls return False. The message is
        settled even if the write fails.
        """
        if not self.machine.finalize(state):
            return False
        if total is None:
            total = max(self.tracker.total, self.tracker.rows_seen)
        snapshot = self.tracker.final_snapshot(total=total)
        self.error = error
        fields = {
            "status": state,
            "total_rows": snapshot.total,
            "processed_rows": snapshot.processed,
            "error_rows": snapshot.errors,
            "finished_at": utc_now_iso(),
        }
        if error:
            fields["error_message"] = error[:MAX_ERROR_MESSAGE_CHARS]
        try:
            self.store.update_job(self.job_id, **fields)
            self.log.info(
                "job_finalized",
                state=state.value,
                processed=snapshot.processed,
                errors=snapshot.errors,
                total=snapshot.total,
                rows_per_second=snapshot.rows_per_second,
                elapsed_seconds=snapshot.elapsed_seconds,
            )
        except Exception as e:
            self.log.error(
                "finalize_persist_failed",
                state=state.value,
                processed=snapshot.processed,
                errors=snapshot.errors,
                total=snapshot.total,
                error=str(e),
            )
        self.settle(fault)
        return True

    def settle(self, fault: bool) -> None:
        policy = self.processor.fault_policy if fault else "ack"
        try:
            if policy == "dead_letter":
                self.delivery.dead_letter(self.error)
            elif policy == "requeue" and self.attempt < self.processor.max_attempts:
                self.delivery.requeue()
            elif policy == "requeue":
                self.log.warning("job_attempts_exhausted", attempt=self.attempt)
                self.delivery.dead_letter(self.error)
            else:
                self.delivery.ack()
        except Exception as e:
            # left in the processing list; recovered and skipped as finished on restart
            self.log.error("settle_failed", policy=policy, error=str(e))

    def outcome(self) -> JobOutcome:
        return JobOutcome(
            job_id=self.job_id,
            state=self.machine.state,
            processed=self.tracker.processed,
            errors=self.tracker.errors,
            total=self.tracker.total,
            settlement=self.delivery.settled,
            error=self.error,
        )
