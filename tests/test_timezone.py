"""
Tests for XMLTV and ISO8601 timestamp parsing.
"""
from datetime import datetime, timezone

import pytest

from streamguide.utils.timezone import (
    DateFormatError,
    parse_iso8601_to_utc,
    parse_xmltv_time,
    parse_xmltv_time_strict,
)


class TestXMLTVTime:
    """XMLTV 'YYYYMMDDHHMMSS +HHMM' parsing"""

    def test_utc_offset(self):
        assert parse_xmltv_time("20250115180000 +0000") == datetime(2025, 1, 15, 18, 0, tzinfo=timezone.utc)

    def test_positive_offset_converted_to_utc(self):
        assert parse_xmltv_time("20250115180000 +0200") == datetime(2025, 1, 15, 16, 0, tzinfo=timezone.utc)

    def test_negative_offset_converted_to_utc(self):
        assert parse_xmltv_time("20250115180000 -0530") == datetime(2025, 1, 15, 23, 30, tzinfo=timezone.utc)

    def test_offset_without_space(self):
        assert parse_xmltv_time("20250115180000+0100") == datetime(2025, 1, 15, 17, 0, tzinfo=timezone.utc)

    def test_missing_offset_falls_back_to_wall_clock(self):
        """No offset: same wall-clock time, read as UTC"""
        assert parse_xmltv_time("20250115180000") == parse_xmltv_time("20250115180000 +0000")

    def test_garbage_offset_falls_back_to_leading_digits(self):
        assert parse_xmltv_time("20250115180000 EST") == datetime(2025, 1, 15, 18, 0, tzinfo=timezone.utc)

    def test_result_is_timezone_aware(self):
        parsed = parse_xmltv_time("20250115180000 +0300")
        assert parsed.tzinfo is not None
        assert parsed.utcoffset().total_seconds() == 0

    @pytest.mark.parametrize("value", [None, "", "2025", "not a date", "20251315180000 +0000"])
    def test_unparseable_returns_none(self, value):
        assert parse_xmltv_time(value) is None

    def test_strict_raises(self):
        with pytest.raises(DateFormatError):
            parse_xmltv_time_strict("yesterday")

    def test_strict_returns_value(self):
        assert parse_xmltv_time_strict("20250115180000 +0000").hour == 18


class TestISO8601:
    """ISO8601 parsing used by API query parameters"""

    def test_zulu_suffix(self):
        assert parse_iso8601_to_utc("2025-10-09T00:00:00Z") == datetime(2025, 10, 9, tzinfo=timezone.utc)

    def test_offset_converted(self):
        assert parse_iso8601_to_utc("2025-10-09T00:00:00+01:00") == datetime(2025, 10, 8, 23, tzinfo=timezone.utc)

    def test_naive_assumed_utc(self):
        assert parse_iso8601_to_utc("2025-10-09T12:30:00") == datetime(2025, 10, 9, 12, 30, tzinfo=timezone.utc)

    def test_invalid_raises_date_format_error(self):
        with pytest.raises(DateFormatError):
            parse_iso8601_to_utc("tomorrow at noon")

    def test_date_format_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_iso8601_to_utc("")
