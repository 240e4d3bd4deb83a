"""TSV file loader."""
import csv

from csv_pipeline_core.ingest.loaders.base import DelimitedLoader


class TSVLoader(DelimitedLoader):
    """Loader for TSV (tab-separated values) files."""

    name = "tsv"
    sep = "\t"

    def detect(self, head: bytes, suffix: str) -> bool:
        if suffix not in (".tsv", ".tab"):
            return False
        text = head.decode("utf-8", errors="replace")
        first_line = text.split("\n")[0]
        # a TSV header with a single column has no tab, so only reject multi-column CSV headers
        if "\t" not in first_line and "," in first_line:
            return False
        try:
            list(csv.reader([first_line], delimiter="\t"))
            return True
        except csv.Error:
            return False
