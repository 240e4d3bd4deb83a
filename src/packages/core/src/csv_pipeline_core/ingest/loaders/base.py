"""Base loader interface."""
import csv
import re
from abc import ABC, abstractmethod
from typing import Any, Iterator

from csv_pipeline_core.ingest.normalize import normalize_header, normalize_record, readable_text
from csv_pipeline_core.util.errors import StreamFaultError

# lone surrogates only come from bytes that were not valid in the file's encoding
UNDECODABLE = re.compile("[\udc80-\udcff]")


class MalformedRow(dict):
    """A data line that could not be read as a record.

    Holds what could be read of the line; ``reason`` says what was wrong.
    """

    def __init__(self, fields: dict[str, Any], reason: str):
        super().__init__(fields)
        self.reason = reason


class BaseLoader(ABC):
    """Abstract base class for row loaders."""

    name: str = ""

    @abstractmethod
    def detect(self, head: bytes, suffix: str) -> bool:
        """Detect if this loader can handle the file."""
        pass

    @abstractmethod
    def iter_rows(self, file_path: str, options: dict | None = None) -> Iterator[dict[str, Any]]:
        """Lazily yield records from the file in file order.

        Lines that cannot be read as a record are yielded in place as
        ``MalformedRow``. Raises ``StreamFaultError`` if the read itself fails
        part way; every row before the fault has been yielded by then.
        """
        pass


class DelimitedLoader(BaseLoader):
    """Streams a delimited text file one record at a time.

    The first non-blank line is the header. Quoted fields may span lines.
    A line with more fields than the header, or with bytes that do not
    decode, becomes a ``MalformedRow``; a short line is padded with empty
    strings. Blank lines are skipped.
    """

    sep: str = ","

    def iter_rows(self, file_path: str, options: dict | None = None) -> Iterator[dict[str, Any]]:
        options = options or {}
        encoding = options.get("encoding", "utf-8-sig")
        try:
            with open(file_path, encoding=encoding, errors="surrogateescape", newline="") as f:
                header = None
                for fields in csv.reader(f, delimiter=self.sep):
                    if not fields:
                        continue
                    if header is None:
                        header = normalize_header(fields)
                        continue
                    yield self.to_row(header, fields)
        except (OSError, csv.Error) as e:
            raise StreamFaultError(f"{self.name.upper()} read error: {e}") from e

    def to_row(self, header: list[str], fields: list[str]) -> dict[str, Any]:
        if len(fields) > len(header):
            raw = dict(zip(header, fields))
            raw["_extra"] = fields[len(header):]
            return MalformedRow(
                self._readable(raw), f"expected {len(header)} fields, saw {len(fields)}"
            )
        if any(UNDECODABLE.search(v) for v in fields):
            raw = dict(zip(header, fields))
            return MalformedRow(self._readable(raw), "line contains bytes that are not valid text")
        fields = fields + [""] * (len(header) - len(fields))
        return normalize_record(dict(zip(header, fields)))

    @staticmethod
    def _readable(raw: dict[str, Any]) -> dict[str, Any]:
        out = {}
        for k, v in raw.items():
            if isinstance(v, list):
                out[k] = [readable_text(x) for x in v]
            else:
                out[k] = readable_text(v)
        return out
