"""Worker settings."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Worker settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    redis_url: str = "redis://redis:6379/0"
    queue_name: str = "csv_jobs"
    consumer_name: str = "worker-1"
    sqlite_path: str = "/data/jobs.db"
    status_vocabulary: str = "standard"
    progress_policy: str = "time"
    progress_interval_seconds: float = 1.0
    progress_every_rows: int = 1000
    fault_policy: str = "ack"
    max_attempts: int = 3
    row_hook: str | None = None
    poll_timeout_seconds: float = 5.0
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings."""
    return Settings()
