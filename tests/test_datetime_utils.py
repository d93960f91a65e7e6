"""Tests for ISO-8601 normalization of timestamps sent to GRID."""

from datetime import datetime, timezone

import pytest

from gridscout.utils.datetime_utils import (
    MalformedTimestamp,
    ensure_iso8601_with_timezone,
    parse_timestamp,
    to_iso_utc,
)


class TestEnsureIso8601WithTimezone:
    """Normalize-then-assert behaviour."""

    @pytest.mark.parametrize(
        "raw",
        [
            "2025-01-02T10:00:00Z",
            "2025-01-02T10:00:00z",
            "2025-01-02T10:00:00.123Z",
            "2025-01-02T10:00:00+02:00",
            "2025-01-02T10:00:00-0530",
        ],
    )
    def test_timezone_qualified_input_is_unchanged(self, raw):
        """Inputs that already carry a timezone come back as-is."""
        assert ensure_iso8601_with_timezone(raw) == raw

    def test_missing_timezone_gets_z(self):
        assert ensure_iso8601_with_timezone("2025-01-02T10:00:00") == "2025-01-02T10:00:00Z"
        assert ensure_iso8601_with_timezone("2025-01-02T10:00:00.5") == "2025-01-02T10:00:00.5Z"

    def test_whitespace_is_trimmed(self):
        assert ensure_iso8601_with_timezone("  2025-01-02T10:00:00Z \n") == "2025-01-02T10:00:00Z"

    @pytest.mark.parametrize(
        "raw",
        ["", "2025-01-02", "yesterday", "2025-01-02 10:00:00Z", "2025-01-02T10:00:00+2"],
    )
    def test_malformed_input_raises(self, raw):
        with pytest.raises(MalformedTimestamp):
            ensure_iso8601_with_timezone(raw)

    def test_non_string_raises(self):
        with pytest.raises(MalformedTimestamp):
            ensure_iso8601_with_timezone(None)  # type: ignore[arg-type]

    @pytest.mark.parametrize(
        "raw",
        [
            "2025-01-02T10:00:00",
            "2025-01-02T10:00:00Z",
            "2025-01-02T10:00:00.123456789",
            "2025-01-02T10:00:00+0100",
            " 2025-06-30T23:59:59-07:00 ",
        ],
    )
    def test_idempotent(self, raw):
        """ensure(ensure(x)) == ensure(x)."""
        once = ensure_iso8601_with_timezone(raw)
        assert ensure_iso8601_with_timezone(once) == once

    def test_is_a_value_error(self):
        """Callers that only know ValueError still catch malformed timestamps."""
        assert issubclass(MalformedTimestamp, ValueError)


class TestToIsoUtc:
    def test_millisecond_precision_with_z(self):
        value = datetime(2025, 1, 2, 10, 0, 0, 123456, tzinfo=timezone.utc)
        assert to_iso_utc(value) == "2025-01-02T10:00:00.123Z"

    def test_naive_is_treated_as_utc(self):
        assert to_iso_utc(datetime(2025, 1, 2, 10, 0, 0)) == "2025-01-02T10:00:00.000Z"

    def test_output_passes_validation(self):
        rendered = to_iso_utc(datetime(2024, 12, 31, 23, 59, 59, tzinfo=timezone.utc))
        assert ensure_iso8601_with_timezone(rendered) == rendered


class TestParseTimestamp:
    def test_offsets_are_converted_to_utc(self):
        parsed = parse_timestamp("2025-01-02T12:00:00+02:00")
        assert parsed == datetime(2025, 1, 2, 10, 0, 0, tzinfo=timezone.utc)

    def test_compact_offset(self):
        parsed = parse_timestamp("2025-01-02T05:00:00-0500")
        assert parsed == datetime(2025, 1, 2, 10, 0, 0, tzinfo=timezone.utc)

    def test_long_fraction(self):
        parsed = parse_timestamp("2025-01-02T10:00:00.123456789Z")
        assert parsed.microsecond == 123456

    def test_missing_timezone_is_utc(self):
        assert parse_timestamp("2025-01-02T10:00:00").tzinfo is not None

    def test_malformed(self):
        with pytest.raises(MalformedTimestamp):
            parse_timestamp("not a date")
