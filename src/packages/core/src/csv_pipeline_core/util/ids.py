"""ID generation utilities."""
import uuid
from pathlib import Path


def generate_id() -> str:
    """Generate a unique ID."""
    return str(uuid.uuid4())


def generate_upload_name(original_name: str | None) -> str:
    """Unique on-disk name for an upload, keeping the original extension."""
    suffix = Path(original_name or "").suffix.lower() or ".bin"
    return f"{generate_id()}{suffix}"
