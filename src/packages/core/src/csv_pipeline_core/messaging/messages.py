"""Queue message contract."""
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from csv_pipeline_core.util.errors import MalformedMessageError


class QueueMessage(BaseModel):
    """Body of a job message: ``{"jobId": ..., "filepath": ...}``.

    ``attempt`` is only present on messages put back by the requeue fault
    policy; first deliveries omit it.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    job_id: str = Field(alias="jobId", min_length=1)
    filepath: str = Field(min_length=1)
    attempt: int = Field(default=1, ge=1)

    @field_validator("job_id", mode="before")
    @classmethod
    def _coerce_job_id(cls, v: Any) -> Any:
        # producers with integer primary keys send a number
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_defaults=True)

    def next_attempt(self) -> "QueueMessage":
        return self.model_copy(update={"attempt": self.attempt + 1})


def parse_message(body: bytes | str) -> QueueMessage:
    """Decode a raw queue body, raising ``MalformedMessageError`` if invalid."""
    try:
        return QueueMessage.model_validate_json(body)
    except ValidationError as e:
        raise MalformedMessageError(f"Invalid job message: {e.error_count()} error(s): {e}") from e
