"""Lenient readers for API payload values.

The backend is not consistent about shapes: numbers arrive as strings,
frameworks arrive as bare names or as ``{"name": ...}`` objects, lists
arrive as ``null``.  Every reader here returns a safe default instead of
raising.
"""

import math
from typing import Any


def coerce_float(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return number


def coerce_int(value: Any, default: int = 0) -> int:
    number = coerce_float(value, float(default))
    return int(number)


def coerce_optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    number = coerce_float(value, math.nan)
    if math.isnan(number):
        return None
    return int(number)


def coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def normalize_name(value: Any) -> str:
    """Return a plain lowercase identifier from a name or a named object."""
    if isinstance(value, dict):
        value = value.get("name") or value.get("slug") or ""
    if value is None:
        return ""
    return str(value).strip().lower()


def coerce_list(value: Any) -> list:
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def coerce_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value)
