"""Format detection and loader lookup."""
from pathlib import Path

from csv_pipeline_core.ingest.loaders import BaseLoader, CSVLoader, TSVLoader
from csv_pipeline_core.util.errors import ValidationError

LOADERS: list[BaseLoader] = [CSVLoader(), TSVLoader()]


def detect_format(file_path: str) -> str | None:
    """Detect the format of a file."""
    path = Path(file_path)
    if not path.exists():
        return None
    with open(file_path, "rb") as f:
        head = f.read(8192)
    for loader in LOADERS:
        if loader.detect(head, path.suffix.lower()):
            return loader.name
    return None


def get_loader(format_name: str) -> BaseLoader:
    """Get a loader by format name."""
    for loader in LOADERS:
        if loader.name == format_name:
            return loader
    raise ValidationError(f"Unknown format: {format_name}")


def loader_for_path(file_path: str) -> BaseLoader:
    """Pick a loader for a file, falling back to CSV for unrecognized files."""
    return get_loader(detect_format(file_path) or CSVLoader.name)
