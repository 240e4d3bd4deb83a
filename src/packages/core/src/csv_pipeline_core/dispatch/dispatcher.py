"""Job dispatch: create the job row, then publish its queue message."""
import structlog
from tenacity import RetryCallState, Retrying, stop_after_attempt, wait_fixed

from csv_pipeline_core.jobs.models import Job, JobState
from csv_pipeline_core.jobs.repo import JobStore
from csv_pipeline_core.messaging import QueueMessage, RedisQueue
from csv_pipeline_core.util.errors import DispatchError, ValidationError
from csv_pipeline_core.util.time import utc_now_iso

logger = structlog.get_logger()

PUBLISH_FAILURE_ACTIONS = ("fail", "rollback")


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "publish_retry",
        attempt=retry_state.attempt_number,
        error=str(exc) if exc else None,
    )


class Dispatcher:
    """Creates PENDING jobs and enqueues them.

    A job is never left PENDING without a published message: when every
    publish attempt fails the job is marked FAILED (``fail``) or deleted
    (``rollback``) and ``DispatchError`` is raised.
    """

    def __init__(
        self,
        store: JobStore,
        queue: RedisQueue,
        *,
        publish_attempts: int = 3,
        retry_wait_seconds: float = 0.5,
        on_publish_failure: str = "fail",
    ):
        if on_publish_failure not in PUBLISH_FAILURE_ACTIONS:
            raise ValidationError(
                f"Unknown publish failure action: {on_publish_failure} "
                f"(expected one of {list(PUBLISH_FAILURE_ACTIONS)})"
            )
        self.store = store
        self.queue = queue
        self.publish_attempts = max(1, publish_attempts)
        self.retry_wait_seconds = retry_wait_seconds
        self.on_publish_failure = on_publish_failure

    def dispatch(self, filename: str, filepath: str) -> Job:
        job = self.store.create_job(filename, filepath)
        message = QueueMessage(job_id=job.job_id, filepath=filepath)
        try:
            self._publish(message)
        except Exception as e:
            logger.error("publish_failed", job_id=job.job_id, error=str(e))
            self._compensate(job, e)
            raise DispatchError(job.job_id, str(e)) from e
        logger.info("job_dispatched", job_id=job.job_id, queue=self.queue.name)
        return job

    def _publish(self, message: QueueMessage) -> None:
        retrying = Retrying(
            stop=stop_after_attempt(self.publish_attempts),
            wait=wait_fixed(self.retry_wait_seconds),
            before_sleep=_log_retry,
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                self.queue.publish(message)

    def _compensate(self, job: Job, error: Exception) -> None:
        try:
            if self.on_publish_failure == "rollback":
                self.store.delete_job(job.job_id)
                logger.warning("job_rolled_back", job_id=job.job_id)
            else:
                self.store.update_job(
                    job.job_id,
                    status=JobState.FAILED,
                    error_message=f"Publish failed: {error}"[:500],
                    finished_at=utc_now_iso(),
                )
                logger.warning("job_marked_failed", job_id=job.job_id)
        except Exception as e:
            logger.error("dispatch_compensation_failed", job_id=job.job_id, error=str(e))
