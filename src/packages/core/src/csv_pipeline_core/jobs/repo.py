"""Job repository using SQLite."""
import json
import os
import sqlite3
from contextlib import contextmanager
from typing import Any, Mapping

import structlog

from csv_pipeline_core.jobs.models import Job, JobRowError, JobState, StatusVocabulary
from csv_pipeline_core.util.errors import ValidationError
from csv_pipeline_core.util.ids import generate_id
from csv_pipeline_core.util.time import utc_now_iso

logger = structlog.get_logger()

SCHEMA = """
CREATE TABLE IF NOT EXISTS jobs (
    job_id TEXT PRIMARY KEY,
    filename TEXT NOT NULL,
    filepath TEXT NOT NULL,
    status TEXT NOT NULL,
    total_rows INTEGER DEFAULT 0,
    processed_rows INTEGER DEFAULT 0,
    error_rows INTEGER DEFAULT 0,
    error_message TEXT,
    created_at TEXT,
    updated_at TEXT,
    finished_at TEXT
);
CREATE TABLE IF NOT EXISTS job_errors (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    job_id TEXT NOT NULL REFERENCES jobs(job_id),
    line_number INTEGER NOT NULL,
    error_message TEXT NOT NULL,
    raw_row TEXT,
    created_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_job_errors_job ON job_errors (job_id, line_number);
"""

# columns a caller may change after creation; id, filename, filepath and created_at are fixed
UPDATABLE_COLUMNS = frozenset(
    {"status", "total_rows", "processed_rows", "error_rows", "error_message", "finished_at"}
)


class JobStore:
    """Reads and writes job records and their row errors.

    Every call opens its own connection and commits on exit, so each update is
    an independent statement and a failed write never rolls back earlier ones.
    """

    def __init__(self, sqlite_path: str, vocabulary: StatusVocabulary | None = None):
        self.sqlite_path = sqlite_path
        self.vocabulary = vocabulary or StatusVocabulary()

    @contextmanager
    def get_conn(self):
        """Get a database connection."""
        os.makedirs(os.path.dirname(self.sqlite_path) or ".", exist_ok=True)
        conn = sqlite3.connect(self.sqlite_path)
        conn.row_factory = sqlite3.Row
        try:
            conn.executescript(SCHEMA)
            yield conn
            conn.commit()
        finally:
            conn.close()

    def init_db(self) -> None:
        """Initialize the database."""
        with self.get_conn():
            pass

    def create_job(self, filename: str, filepath: str, job_id: str | None = None) -> Job:
        """Insert a new job in PENDING."""
        job_id = job_id or generate_id()
        now = utc_now_iso()
        with self.get_conn() as conn:
            conn.execute(
                """
                INSERT INTO jobs (job_id, filename, filepath, status, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (job_id, filename, filepath, self.vocabulary.label(JobState.PENDING), now, now),
            )
        logger.info("job_created", job_id=job_id, filename=filename)
        return Job(
            job_id=job_id,
            filename=filename,
            filepath=filepath,
            status=JobState.PENDING,
            created_at=now,
            updated_at=now,
        )

    def get_job(self, job_id: str) -> Job | None:
        """Get a job by ID."""
        with self.get_conn() as conn:
            row = conn.execute("SELECT * FROM jobs WHERE job_id = ?", (job_id,)).fetchone()
            if row is None:
                return None
            return Job.from_row(dict(row))

    def update_job(self, job_id: str, **fields: Any) -> None:
        """Update the given columns of a job.

        ``status`` takes a ``JobState`` and is stored as the configured label.
        """
        if not fields:
            return
        unknown = set(fields) - UPDATABLE_COLUMNS
        if unknown:
            raise ValidationError(f"Cannot update job columns: {sorted(unknown)}")
        if "status" in fields:
            fields["status"] = self.vocabulary.label(JobState(fields["status"]))
        fields["updated_at"] = utc_now_iso()

        keys = list(fields)
        sets = ", ".join(f"{k} = ?" for k in keys)
        values = [fields[k] for k in keys]
        values.append(job_id)
        with self.get_conn() as conn:
            conn.execute(f"UPDATE jobs SET {sets} WHERE job_id = ?", values)

    def delete_job(self, job_id: str) -> bool:
        """Delete a job and its row errors. Returns True if a job was removed."""
        with self.get_conn() as conn:
            conn.execute("DELETE FROM job_errors WHERE job_id = ?", (job_id,))
            cur = conn.execute("DELETE FROM jobs WHERE job_id = ?", (job_id,))
            return cur.rowcount > 0

    def insert_job_error(
        self,
        job_id: str,
        line_number: int,
        error_message: str,
        raw_row: Mapping[str, Any] | None = None,
    ) -> None:
        """Append a row error."""
        payload = json.dumps(dict(raw_row), default=str) if raw_row is not None else None
        with self.get_conn() as conn:
            conn.execute(
                """
                INSERT INTO job_errors (job_id, line_number, error_message, raw_row, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (job_id, line_number, error_message, payload, utc_now_iso()),
            )

    def list_job_errors(self, job_id: str, limit: int = 100) -> list[JobRowError]:
        """List row errors for a job in line order."""
        with self.get_conn() as conn:
            rows = conn.execute(
                """
                SELECT job_id, line_number, error_message, raw_row, created_at
                FROM job_errors WHERE job_id = ?
                ORDER BY line_number, id
                LIMIT ?
                """,
                (job_id, limit),
            ).fetchall()
            return [JobRowError(**dict(r)) for r in rows]

    def count_job_errors(self, job_id: str) -> int:
        with self.get_conn() as conn:
            row = conn.execute(
                "SELECT COUNT(*) FROM job_errors WHERE job_id = ?", (job_id,)
            ).fetchone()
            return int(row[0])

    def list_active_jobs(self) -> list[Job]:
        """List all active (pending or processing) jobs."""
        active = self.vocabulary.labels_for(JobState.PENDING, JobState.PROCESSING)
        with self.get_conn() as conn:
            rows = conn.execute(
                "SELECT * FROM jobs WHERE status IN (?, ?) ORDER BY created_at DESC",
                active,
            ).fetchall()
            return [Job.from_row(dict(r)) for r in rows]

    def list_recent_jobs(self, limit: int = 20) -> list[Job]:
        """List recent jobs (active first, then recently finished)."""
        pending, processing = self.vocabulary.labels_for(JobState.PENDING, JobState.PROCESSING)
        with self.get_conn() as conn:
            rows = conn.execute(
                """
                SELECT * FROM jobs
                ORDER BY
                    CASE status
                        WHEN ? THEN 0
                        WHEN ? THEN 1
                        ELSE 2
                    END,
                    updated_at DESC
                LIMIT ?
                """,
                (processing, pending, limit),
            ).fetchall()
            return [Job.from_row(dict(r)) for r in rows]
