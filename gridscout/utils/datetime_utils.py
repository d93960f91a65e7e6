"""
ISO-8601 helpers for timestamps sent to GRID.

Central Data filters take date/time values as ISO-8601 strings that carry a
timezone, so every bound passes through ``ensure_iso8601_with_timezone`` before
it is placed in a query.
"""

import re
from datetime import datetime, timezone

ISO_PREFIX_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?")
TIMEZONE_SUFFIX_PATTERN = re.compile(r"([Zz]|[+\-]\d{2}:?\d{2})$")
ISO_WITH_TZ_PATTERN = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?([Zz]|[+\-]\d{2}:?\d{2})$"
)
ISO_WITHOUT_TZ_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?$")


class MalformedTimestamp(ValueError):
    """Raised when a timestamp cannot be turned into ISO-8601 with a timezone."""

    pass


def to_iso_utc(value: datetime) -> str:
    """Renders a datetime as a millisecond-precision UTC string ending in 'Z'.

    Naive datetimes are taken to be UTC already.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def _normalize_iso8601(raw: str) -> str:
    if not isinstance(raw, str) or not raw:
        raise MalformedTimestamp(
            f"Invalid input: expected ISO-8601 string, got {type(raw).__name__}"
        )
    trimmed = raw.strip()
    if not ISO_PREFIX_PATTERN.match(trimmed):
        raise MalformedTimestamp(f"Invalid ISO-8601 format: {trimmed}")
    if TIMEZONE_SUFFIX_PATTERN.search(trimmed):
        return trimmed
    return trimmed + "Z"


def _assert_iso8601_with_timezone(raw: str) -> None:
    if not isinstance(raw, str) or not raw:
        raise MalformedTimestamp(
            f"Invalid input: expected ISO-8601 string with timezone, got {type(raw).__name__}"
        )
    trimmed = raw.strip()
    if ISO_WITH_TZ_PATTERN.match(trimmed):
        return
    if ISO_WITHOUT_TZ_PATTERN.match(trimmed):
        raise MalformedTimestamp(
            f'ISO-8601 string missing timezone: "{trimmed}". '
            "Expected format: YYYY-MM-DDTHH:mm:ssZ or YYYY-MM-DDTHH:mm:ss+HH:mm"
        )
    raise MalformedTimestamp(f'Invalid ISO-8601 format with timezone: "{trimmed}"')


def ensure_iso8601_with_timezone(raw: str) -> str:
    """Normalizes then validates ``raw``; the returned string always has a timezone.

    Inputs ending in ``Z``/``z`` or a ``+HH:mm``/``+HHmm`` offset are returned
    unchanged (trimmed), inputs without a timezone get ``Z`` appended, anything
    else raises :class:`MalformedTimestamp`.
    """
    normalized = _normalize_iso8601(raw)
    _assert_iso8601_with_timezone(normalized)
    return normalized


def parse_timestamp(raw: str) -> datetime:
    """Parses a GRID timestamp (or a caller bound) into an aware UTC datetime."""
    normalized = ensure_iso8601_with_timezone(raw)
    if normalized[-1] in "Zz":
        normalized = normalized[:-1] + "+00:00"
    elif re.search(r"[+\-]\d{4}$", normalized):
        normalized = normalized[:-2] + ":" + normalized[-2:]
    # fromisoformat before 3.11 only accepts 3 or 6 fractional digits
    match = re.match(r"^(.*T\d{2}:\d{2}:\d{2})\.(\d+)(.*)$", normalized)
    if match:
        head, fraction, tail = match.groups()
        normalized = f"{head}.{fraction[:6].ljust(6, '0')}{tail}"
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError as e:
        raise MalformedTimestamp(f"Invalid ISO-8601 value: {raw}") from e
    return parsed.astimezone(timezone.utc)
