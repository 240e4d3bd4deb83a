"""Record normalization utilities."""
from typing import Any


def normalize_key(k: Any) -> str:
    return str(k).strip()


def normalize_header(fields: list[str]) -> list[str]:
    """Trimmed column names; a repeated name gets a ``.1``, ``.2``, ... suffix."""
    seen: dict[str, int] = {}
    out = []
    for field in fields:
        key = normalize_key(field)
        if key in seen:
            seen[key] += 1
            key = f"{key}.{seen[key]}"
        else:
            seen[key] = 0
        out.append(key)
    return out


def normalize_record(row: dict) -> dict[str, Any]:
    """Normalize a parsed row: trimmed string keys, trimmed string values."""
    out = {}
    for k, v in row.items():
        key = normalize_key(k)
        if isinstance(v, str):
            out[key] = v.strip()
        else:
            out[key] = v
    return out


def readable_text(value: str) -> str:
    """Replace undecodable bytes (kept as surrogates) with U+FFFD."""
    return value.encode("utf-8", "surrogateescape").decode("utf-8", "replace")
