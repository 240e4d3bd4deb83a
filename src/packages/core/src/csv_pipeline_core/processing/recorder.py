"""Per-row hook invocation and error recording."""
from enum import Enum
from typing import Any

import structlog

from csv_pipeline_core.ingest.loaders import MalformedRow
from csv_pipeline_core.jobs.repo import JobStore
from csv_pipeline_core.processing.hooks import RowHook, accept_row

logger = structlog.get_logger()

MAX_ERROR_MESSAGE_CHARS = 500


class RowOutcome(str, Enum):
    OK = "ok"
    FAILED = "failed"


class RowOutcomeRecorder:
    """Runs the row hook and appends a row error for each failure.

    A ``MalformedRow`` from the loader fails without reaching the hook.

    A failure to write the row error is logged and counted in
    ``persist_failures``; it never propagates to the caller.
    """

    def __init__(self, store: JobStore, job_id: str, hook: RowHook = accept_row):
        self.store = store
        self.job_id = job_id
        self.hook = hook
        self.persist_failures = 0

    def process(self, line_number: int, row: dict[str, Any]) -> RowOutcome:
        if isinstance(row, MalformedRow):
            return self._fail(line_number, f"malformed line: {row.reason}", row)
        try:
            self.hook(row)
        except Exception as e:
            return self._fail(line_number, str(e) or e.__class__.__name__, row)
        return RowOutcome.OK

    def _fail(self, line_number: int, message: str, row: dict[str, Any]) -> RowOutcome:
        message = message[:MAX_ERROR_MESSAGE_CHARS]
        logger.warning("row_failed", job_id=self.job_id, line_number=line_number, error=message)
        self._record_error(line_number, message, row)
        return RowOutcome.FAILED

    def _record_error(self, line_number: int, message: str, row: dict[str, Any]) -> None:
        try:
            self.store.insert_job_error(self.job_id, line_number, message, raw_row=row)
        except Exception as e:
            self.persist_failures += 1
            logger.error(
                "row_error_persist_failed",
                job_id=self.job_id,
                line_number=line_number,
                error=str(e),
            )
