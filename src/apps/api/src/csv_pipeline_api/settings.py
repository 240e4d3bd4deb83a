"""API settings."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    redis_url: str = "redis://redis:6379/0"
    queue_name: str = "csv_jobs"
    sqlite_path: str = "/data/jobs.db"
    status_vocabulary: str = "standard"
    max_upload_mb: int = 512
    upload_dir: str = "/tmp/uploads"
    publish_attempts: int = 3
    publish_retry_wait_seconds: float = 0.5
    on_publish_failure: str = "fail"
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings."""
    return Settings()
