"""Streaming row loaders for delimited text files."""
from csv_pipeline_core.ingest.loaders.base import BaseLoader, DelimitedLoader, MalformedRow
from csv_pipeline_core.ingest.loaders.csv import CSVLoader
from csv_pipeline_core.ingest.loaders.tsv import TSVLoader

__all__ = ["BaseLoader", "DelimitedLoader", "MalformedRow", "CSVLoader", "TSVLoader"]
