"""Ingest module for streaming delimited files."""
from csv_pipeline_core.ingest.count import count_data_rows, try_count_data_rows
from csv_pipeline_core.ingest.registry import detect_format, get_loader, loader_for_path

__all__ = [
    "count_data_rows",
    "try_count_data_rows",
    "detect_format",
    "get_loader",
    "loader_for_path",
]
