"""Fast row counting by scanning for record separators."""
import structlog

logger = structlog.get_logger()

SCAN_CHUNK_BYTES = 1024 * 1024


def count_data_rows(file_path: str, has_header: bool = True) -> int:
    """Count data rows by counting newline bytes.

    The header line is excluded and an unterminated last line still counts.
    Quoted fields containing newlines make this an over-estimate; callers use
    it only for progress percentages.
    """
    lines = 0
    last = b""
    with open(file_path, "rb") as f:
        while True:
            buf = f.read(SCAN_CHUNK_BYTES)
            if not buf:
                break
            lines += buf.count(b"\n")
            last = buf[-1:]
    if last and last != b"\n":
        lines += 1
    if has_header and lines:
        lines -= 1
    return lines


def try_count_data_rows(file_path: str, has_header: bool = True) -> int:
    """Best-effort ``count_data_rows``; returns 0 if the file cannot be scanned."""
    try:
        return count_data_rows(file_path, has_header=has_header)
    except OSError as e:
        logger.warning("row_count_failed", file_path=file_path, error=str(e))
        return 0
