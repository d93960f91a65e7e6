# gridscout/utils/misc_utils.py
from typing import Any, Optional


def coerce_id(value: Any) -> Optional[str]:
    """Normalizes an upstream or caller-supplied id to a stripped string.

    GRID returns ids as strings, but callers (and older fixtures) send numbers.
    Booleans and empty values are not ids.
    """
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    return text or None


def truncate(text: str, limit: int = 200) -> str:
    """Shortens upstream error bodies before they reach logs or responses."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."
