"""Tests for row hooks and the row outcome recorder."""
import sqlite3

import pytest
from structlog.testing import capture_logs

from csv_pipeline_core.ingest.loaders import MalformedRow
from csv_pipeline_core.processing import (
    RowOutcome,
    RowOutcomeRecorder,
    accept_row,
    load_hook,
    required_fields,
)
from csv_pipeline_core.util.errors import ValidationError


def reject_negative(row):
    if int(row["amount"]) < 0:
        raise ValueError("amount must not be negative")


def test_success_records_nothing(store):
    job = store.create_job("a.csv", "/tmp/a.csv")
    recorder = RowOutcomeRecorder(store, job.job_id, reject_negative)
    assert recorder.process(1, {"amount": "5"}) is RowOutcome.OK
    assert store.list_job_errors(job.job_id) == []


def test_failure_appends_row_error(store):
    job = store.create_job("a.csv", "/tmp/a.csv")
    recorder = RowOutcomeRecorder(store, job.job_id, reject_negative)
    assert recorder.process(4, {"amount": "-1"}) is RowOutcome.FAILED
    (error,) = store.list_job_errors(job.job_id)
    assert error.line_number == 4
    assert error.error_message == "amount must not be negative"
    assert '"amount": "-1"' in error.raw_row


def test_exception_without_message_uses_class_name(store):
    job = store.create_job("a.csv", "/tmp/a.csv")

    def hook(row):
        raise KeyError

    RowOutcomeRecorder(store, job.job_id, hook).process(1, {})
    assert store.list_job_errors(job.job_id)[0].error_message == "KeyError"


def test_malformed_row_fails_without_calling_hook(store):
    job = store.create_job("a.csv", "/tmp/a.csv")
    calls = []
    row = MalformedRow({"id": "7", "_extra": ["x"]}, "expected 1 fields, saw 2")

    assert RowOutcomeRecorder(store, job.job_id, calls.append).process(7, row) is RowOutcome.FAILED
    assert calls == []
    (error,) = store.list_job_errors(job.job_id)
    assert error.line_number == 7
    assert error.error_message == "malformed line: expected 1 fields, saw 2"
    assert '"_extra": ["x"]' in error.raw_row


def test_error_write_failure_is_swallowed(store, monkeypatch):
    job = store.create_job("a.csv", "/tmp/a.csv")

    def broken_insert(*args, **kwargs):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(store, "insert_job_error", broken_insert)
    recorder = RowOutcomeRecorder(store, job.job_id, reject_negative)
    with capture_logs() as logs:
        assert recorder.process(2, {"amount": "-3"}) is RowOutcome.FAILED
    assert recorder.persist_failures == 1
    assert any(e["event"] == "row_error_persist_failed" and e["line_number"] == 2 for e in logs)


def test_required_fields():
    hook = required_fields("id", "name")
    hook({"id": "1", "name": "x"})
    with pytest.raises(ValueError, match="name"):
        hook({"id": "1", "name": "  "})
    with pytest.raises(ValueError, match="id, name"):
        hook({})


def test_load_hook():
    assert load_hook(None) is accept_row
    assert load_hook("") is accept_row
    hook = load_hook("csv_pipeline_core.processing.hooks:accept_row")
    assert hook is accept_row


@pytest.mark.parametrize(
    "path",
    ["no_colon_here", "csv_pipeline_core.processing.hooks:missing", "not_a_real_module_xyz:fn"],
)
def test_load_hook_rejects_bad_references(path):
    with pytest.raises(ValidationError):
        load_hook(path)
