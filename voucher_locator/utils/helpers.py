"""Shared utility functions used across the locator."""
from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path
from typing import Any

import orjson

_COMPACT_DATE = re.compile(r"^\d{8}$")


# --- Date Utilities -----------------------------------------------------------

def is_compact_date(value: str) -> bool:
    """True for an 8-digit YYYYMMDD string naming a real calendar day."""
    if not isinstance(value, str) or not _COMPACT_DATE.match(value):
        return False
    try:
        datetime.strptime(value, "%Y%m%d")
    except ValueError:
        return False
    return True


def format_display_date(value: str) -> str:
    """20240105 -> 05/01/2024. Anything that is not 8 characters is returned as-is."""
    if not value or len(value) != 8:
        return value
    return f"{value[6:8]}/{value[4:6]}/{value[0:4]}"


def truncate_text(text: str, max_chars: int = 300) -> str:
    """Truncate text for display purposes."""
    if len(text) <= max_chars:
        return text
    return text[:max_chars].rstrip() + "..."


# --- Serialisation ------------------------------------------------------------

def dumps_pretty(data: Any) -> str:
    """Serialise data to an indented JSON string (orjson, handles datetime/UUID)."""
    return orjson.dumps(data, option=orjson.OPT_INDENT_2 | orjson.OPT_NON_STR_KEYS).decode("utf-8")


def save_json(data: Any, path: str | Path) -> None:
    """Serialise data to JSON using orjson."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        f.write(orjson.dumps(data, option=orjson.OPT_INDENT_2 | orjson.OPT_NON_STR_KEYS))


def load_json(path: str | Path) -> Any:
    """Load JSON data from file."""
    with open(Path(path), "rb") as f:
        return orjson.loads(f.read())
