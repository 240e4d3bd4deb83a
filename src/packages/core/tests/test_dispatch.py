"""Tests for job dispatch."""
import pytest
from structlog.testing import capture_logs

from csv_pipeline_core.dispatch import Dispatcher
from csv_pipeline_core.jobs import JobState
from csv_pipeline_core.messaging import RedisQueue, parse_message
from csv_pipeline_core.util.errors import DispatchError, ValidationError


@pytest.fixture
def queue(fake_redis):
    return RedisQueue(fake_redis, "jobs", consumer="api")


def make_dispatcher(store, queue, **kwargs):
    kwargs.setdefault("retry_wait_seconds", 0)
    return Dispatcher(store, queue, **kwargs)


def test_dispatch_creates_pending_job_and_publishes(store, queue):
    job = make_dispatcher(store, queue).dispatch("a.csv", "/data/a.csv")

    assert store.get_job(job.job_id).status is JobState.PENDING
    (raw,) = queue.client.lrange("jobs", 0, -1)
    msg = parse_message(raw)
    assert (msg.job_id, msg.filepath) == (job.job_id, "/data/a.csv")


def test_publish_failure_marks_job_failed(store, queue, fake_redis):
    fake_redis.failing.add("lpush")
    with capture_logs() as logs:
        with pytest.raises(DispatchError) as exc_info:
            make_dispatcher(store, queue).dispatch("a.csv", "/data/a.csv")

    job = store.get_job(exc_info.value.job_id)
    assert job.status is JobState.FAILED
    assert job.error_message.startswith("Publish failed")
    assert job.finished_at is not None
    events = [e["event"] for e in logs]
    assert events.count("publish_retry") == 2
    assert "publish_failed" in events


def test_publish_failure_with_rollback_deletes_job(store, queue, fake_redis):
    fake_redis.failing.add("lpush")
    with pytest.raises(DispatchError) as exc_info:
        make_dispatcher(store, queue, on_publish_failure="rollback").dispatch("a.csv", "/data/a.csv")
    assert store.get_job(exc_info.value.job_id) is None
    assert store.list_recent_jobs() == []


def test_transient_publish_failure_is_retried(store, queue, fake_redis):
    calls = []
    original = fake_redis.lpush

    def flaky_lpush(name, *values):
        calls.append(name)
        if len(calls) == 1:
            fake_redis.failing.add("lpush")
        else:
            fake_redis.failing.discard("lpush")
        return original(name, *values)

    fake_redis.lpush = flaky_lpush
    job = make_dispatcher(store, queue).dispatch("a.csv", "/data/a.csv")

    assert len(calls) == 2
    assert store.get_job(job.job_id).status is JobState.PENDING
    assert queue.depth() == 1


def test_single_attempt(store, queue, fake_redis):
    fake_redis.failing.add("lpush")
    with capture_logs() as logs:
        with pytest.raises(DispatchError):
            make_dispatcher(store, queue, publish_attempts=1).dispatch("a.csv", "/data/a.csv")
    assert "publish_retry" not in [e["event"] for e in logs]


def test_unknown_failure_action():
    with pytest.raises(ValidationError):
        Dispatcher(None, None, on_publish_failure="ignore")
