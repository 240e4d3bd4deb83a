"""Tests for the job message contract and the Redis list queue."""
import json

import pytest
from structlog.testing import capture_logs

from csv_pipeline_core.messaging import QueueMessage, RedisQueue, parse_message
from csv_pipeline_core.util.errors import MalformedMessageError


def test_parse_message_reads_wire_names():
    msg = parse_message(b'{"jobId": "abc", "filepath": "/data/a.csv"}')
    assert msg.job_id == "abc"
    assert msg.filepath == "/data/a.csv"
    assert msg.attempt == 1


def test_parse_message_accepts_numeric_job_id_and_extra_fields():
    msg = parse_message('{"jobId": 42, "filepath": "/data/a.csv", "source": "upload"}')
    assert msg.job_id == "42"


def test_to_json_uses_wire_names_and_omits_first_attempt():
    msg = QueueMessage(job_id="abc", filepath="/data/a.csv")
    assert json.loads(msg.to_json()) == {"jobId": "abc", "filepath": "/data/a.csv"}
    assert json.loads(msg.next_attempt().to_json())["attempt"] == 2


@pytest.mark.parametrize(
    "body",
    [
        b"not json",
        b"[]",
        b'{"filepath": "/data/a.csv"}',
        b'{"jobId": "abc"}',
        b'{"jobId": "", "filepath": "/data/a.csv"}',
        b'{"jobId": "abc", "filepath": "/data/a.csv", "attempt": 0}',
    ],
)
def test_parse_message_rejects_invalid_bodies(body):
    with pytest.raises(MalformedMessageError):
        parse_message(body)


@pytest.fixture
def queue(fake_redis):
    return RedisQueue(fake_redis, "jobs", consumer="w1")


def publish(queue, job_id):
    queue.publish(QueueMessage(job_id=job_id, filepath=f"/data/{job_id}.csv"))


def test_receive_is_fifo_and_moves_to_processing(queue):
    publish(queue, "a")
    publish(queue, "b")
    first = queue.receive(timeout=0)
    assert parse_message(first.raw).job_id == "a"
    assert queue.depth() == 1
    assert queue.in_flight() == 1


def test_receive_returns_none_when_empty(queue):
    assert queue.receive(timeout=0) is None


def test_ack_removes_from_processing(queue):
    publish(queue, "a")
    delivery = queue.receive(timeout=0)
    assert delivery.ack() is True
    assert delivery.settled == "ack"
    assert queue.in_flight() == 0
    assert queue.depth() == 0


def test_second_settlement_is_ignored(queue):
    publish(queue, "a")
    delivery = queue.receive(timeout=0)
    delivery.ack()
    with capture_logs() as logs:
        assert delivery.dead_letter("late") is False
        assert delivery.requeue() is False
    assert delivery.settled == "ack"
    assert queue.dead_letters() == []
    assert queue.depth() == 0
    assert [e["event"] for e in logs] == ["delivery_already_settled"] * 2


def test_requeue_bumps_attempt(queue):
    publish(queue, "a")
    queue.receive(timeout=0).requeue()
    assert queue.in_flight() == 0
    again = queue.receive(timeout=0)
    assert parse_message(again.raw).attempt == 2


def test_dead_letter_parks_message(queue):
    publish(queue, "a")
    delivery = queue.receive(timeout=0)
    delivery.dead_letter("I/O error")
    assert queue.in_flight() == 0
    assert queue.depth() == 0
    (dead,) = queue.dead_letters()
    assert parse_message(dead).job_id == "a"


def test_recover_unacked_restores_order(queue):
    for job_id in ("a", "b", "c"):
        publish(queue, job_id)
    queue.receive(timeout=0)
    queue.receive(timeout=0)
    assert queue.recover_unacked() == 2
    assert queue.in_flight() == 0
    received = [parse_message(queue.receive(timeout=0).raw).job_id for _ in range(3)]
    assert received == ["a", "b", "c"]


def test_processing_lists_are_per_consumer(fake_redis):
    first = RedisQueue(fake_redis, "jobs", consumer="w1")
    second = RedisQueue(fake_redis, "jobs", consumer="w2")
    publish(first, "a")
    first.receive(timeout=0)
    assert second.recover_unacked() == 0
    assert first.in_flight() == 1
