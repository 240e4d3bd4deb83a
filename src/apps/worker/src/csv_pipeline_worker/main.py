"""Worker entrypoint."""
import structlog
from redis import Redis

from csv_pipeline_core.jobs import JobStore, StatusVocabulary
from csv_pipeline_core.messaging import RedisQueue
from csv_pipeline_core.processing import StreamProcessor, load_hook
from csv_pipeline_worker.logging_setup import configure_logging
from csv_pipeline_worker.settings import Settings, get_settings
from csv_pipeline_worker.tasks import process_next

logger = structlog.get_logger()


def build_processor(settings: Settings, store: JobStore) -> StreamProcessor:
    """Build a processor from settings."""
    return StreamProcessor(
        store,
        load_hook(settings.row_hook),
        progress_policy=settings.progress_policy,
        progress_interval_seconds=settings.progress_interval_seconds,
        progress_every_rows=settings.progress_every_rows,
        fault_policy=settings.fault_policy,
        max_attempts=settings.max_attempts,
    )


def run_worker(
    queue: RedisQueue,
    processor: StreamProcessor,
    poll_timeout: float = 5.0,
    max_messages: int | None = None,
) -> int:
    """Consume messages one at a time. Returns the number handled."""
    recovered = queue.recover_unacked()
    logger.info("worker_ready", queue=queue.name, consumer=queue.consumer, recovered=recovered)
    handled = 0
    while max_messages is None or handled < max_messages:
        if process_next(queue, processor, timeout=poll_timeout):
            handled += 1
    return handled


def main():
    """Start the worker."""
    settings = get_settings()
    configure_logging(settings.log_level)

    store = JobStore(settings.sqlite_path, StatusVocabulary(settings.status_vocabulary))
    store.init_db()
    processor = build_processor(settings, store)

    client = Redis.from_url(settings.redis_url)
    try:
        queue = RedisQueue(client, settings.queue_name, consumer=settings.consumer_name)
        run_worker(queue, processor, poll_timeout=settings.poll_timeout_seconds)
    except KeyboardInterrupt:
        logger.info("worker_stopping")
    finally:
        client.close()


if __name__ == "__main__":
    main()
