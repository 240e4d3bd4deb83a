"""CSV file loader."""
import csv

from csv_pipeline_core.ingest.loaders.base import DelimitedLoader


class CSVLoader(DelimitedLoader):
    """Loader for CSV files."""

    name = "csv"
    sep = ","

    def detect(self, head: bytes, suffix: str) -> bool:
        if suffix != ".csv":
            return False
        try:
            text = head.decode("utf-8", errors="replace")
            list(csv.reader([text.split("\n")[0]]))
            return True
        except csv.Error:
            return False
