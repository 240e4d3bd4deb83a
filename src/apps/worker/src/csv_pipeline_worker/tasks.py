"""Queue message handling."""
import structlog

from csv_pipeline_core.jobs import JobState
from csv_pipeline_core.messaging import Delivery, RedisQueue, parse_message
from csv_pipeline_core.processing import JobOutcome, StreamProcessor
from csv_pipeline_core.util.errors import MalformedMessageError
from csv_pipeline_core.util.time import utc_now_iso

logger = structlog.get_logger()


def mark_failed(processor: StreamProcessor, job_id: str, error: str) -> None:
    """Best-effort FAILED write for a run that crashed before finalizing."""
    try:
        processor.store.update_job(
            job_id,
            status=JobState.FAILED,
            error_message=error[:500],
            finished_at=utc_now_iso(),
        )
    except Exception as e:
        logger.error("mark_failed_persist_failed", job_id=job_id, error=str(e))


def handle_delivery(delivery: Delivery, processor: StreamProcessor) -> JobOutcome | None:
    """Run the job referenced by a delivery. Malformed messages are acked and dropped."""
    try:
        message = parse_message(delivery.raw)
    except MalformedMessageError as e:
        logger.error("message_malformed", body=delivery.body[:200], error=str(e))
        delivery.ack()
        return None

    logger.info("job_received", job_id=message.job_id, attempt=message.attempt)
    try:
        return processor.run(message.job_id, message.filepath, delivery, attempt=message.attempt)
    except Exception as e:
        logger.exception("job_run_crashed", job_id=message.job_id, error=str(e))
        # finalizing always settles, so an unsettled delivery means the job was never finalized
        if delivery.settled is None:
            mark_failed(processor, message.job_id, f"{e.__class__.__name__}: {e}")
            delivery.ack()
        return None


def process_next(queue: RedisQueue, processor: StreamProcessor, timeout: float = 5.0) -> bool:
    """Handle one message if one arrives within ``timeout``. Returns False on timeout."""
    delivery = queue.receive(timeout=timeout)
    if delivery is None:
        return False
    handle_delivery(delivery, processor)
    return True
