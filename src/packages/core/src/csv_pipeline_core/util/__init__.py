"""Utility modules."""
from csv_pipeline_core.util.ids import generate_id, generate_upload_name
from csv_pipeline_core.util.time import utc_now_iso
from csv_pipeline_core.util.errors import (
    DispatchError,
    InvalidTransitionError,
    MalformedMessageError,
    MissingSourceError,
    PipelineError,
    StreamFaultError,
    ValidationError,
)

__all__ = [
    "generate_id",
    "generate_upload_name",
    "utc_now_iso",
    "PipelineError",
    "ValidationError",
    "InvalidTransitionError",
    "MissingSourceError",
    "StreamFaultError",
    "MalformedMessageError",
    "DispatchError",
]
