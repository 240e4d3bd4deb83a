"""Shared test fixtures: in-memory Redis, delivery handles, job store, CSV files."""
from collections import defaultdict

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from csv_pipeline_core.jobs import JobStore, StatusVocabulary


def _b(value):
    return value.encode("utf-8") if isinstance(value, str) else value


class FakePipeline:
    """Buffers list commands and applies them on ``execute``."""

    def __init__(self, redis):
        self.redis = redis
        self.commands = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.commands = []
        return False

    def lpush(self, name, *values):
        self.commands.append(("lpush", name, values))
        return self

    def lrem(self, name, count, value):
        self.commands.append(("lrem", name, (count, value)))
        return self

    def execute(self):
        results = []
        for command, name, args in self.commands:
            results.append(getattr(self.redis, command)(name, *args))
        self.commands = []
        return results


class FakeRedis:
    """The list commands used by the job queue, kept in memory.

    Index 0 of each list is its left end. Commands named in ``failing`` raise
    a connection error.
    """

    def __init__(self):
        self.lists = defaultdict(list)
        self.failing = set()
        self.closed = False

    def _check(self, command):
        if command in self.failing:
            raise RedisConnectionError(f"{command}: connection refused")

    def lpush(self, name, *values):
        self._check("lpush")
        for v in values:
            self.lists[name].insert(0, _b(v))
        return len(self.lists[name])

    def lrange(self, name, start, end):
        items = self.lists[name]
        end = len(items) if end == -1 else end + 1
        return items[start:end]

    def llen(self, name):
        return len(self.lists[name])

    def lrem(self, name, count, value):
        self._check("lrem")
        items = self.lists[name]
        removed = 0
        value = _b(value)
        while value in items and (count == 0 or removed < count):
            items.remove(value)
            removed += 1
        return removed

    def lmove(self, first_list, second_list, src="LEFT", dest="RIGHT"):
        self._check("lmove")
        source = self.lists[first_list]
        if not source:
            return None
        value = source.pop(0 if src == "LEFT" else -1)
        target = self.lists[second_list]
        if dest == "LEFT":
            target.insert(0, value)
        else:
            target.append(value)
        return value

    def blmove(self, first_list, second_list, timeout, src="LEFT", dest="RIGHT"):
        return self.lmove(first_list, second_list, src=src, dest=dest)

    def pipeline(self, transaction=True):
        return FakePipeline(self)

    def ping(self):
        self._check("ping")
        return True

    def close(self):
        self.closed = True


class FakeDelivery:
    """Delivery handle that records how it was settled."""

    def __init__(self, raw=b"{}"):
        self.raw = raw
        self.settled = None
        self.calls = []

    @property
    def body(self):
        return self.raw.decode("utf-8") if isinstance(self.raw, bytes) else self.raw

    def _settle(self, action):
        self.calls.append(action)
        if self.settled is not None:
            return False
        self.settled = action
        return True

    def ack(self):
        return self._settle("ack")

    def requeue(self):
        return self._settle("requeue")

    def dead_letter(self, reason=None):
        return self._settle("dead_letter")


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def delivery():
    return FakeDelivery()


@pytest.fixture
def make_delivery():
    return FakeDelivery


@pytest.fixture
def store(tmp_path):
    s = JobStore(str(tmp_path / "jobs.db"), StatusVocabulary("standard"))
    s.init_db()
    return s


@pytest.fixture
def write_csv(tmp_path):
    """Write a CSV with an ``id,name,amount`` header and ``rows`` data lines."""

    def _write(rows: int, name: str = "data.csv", sep: str = ",") -> str:
        path = tmp_path / name
        lines = [sep.join(["id", "name", "amount"])]
        lines += [sep.join([str(i), f"item-{i}", str(i * 10)]) for i in range(1, rows + 1)]
        path.write_text("\n".join(lines) + "\n")
        return str(path)

    return _write
