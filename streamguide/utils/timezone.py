"""
Date and Time utilities

This module handles XMLTV timestamp parsing and the ISO8601 parsing used by API queries.
Centralizes all date parsing logic to maintain consistency across the application.
"""
from datetime import datetime, timedelta, timezone
import logging

logger = logging.getLogger(__name__)

XMLTV_TIME_FORMAT = '%Y%m%d%H%M%S'
XMLTV_TIME_LENGTH = 14


class DateFormatError(ValueError):
    """Raised when date format is invalid"""
    pass


def _parse_offset(offset: str) -> timedelta | None:
    """Parse a '+HHMM' / '-HHMM' offset, None if malformed"""
    if len(offset) != 5 or offset[0] not in '+-' or not offset[1:].isdigit():
        return None

    sign = 1 if offset[0] == '+' else -1
    hours = int(offset[1:3])
    minutes = int(offset[3:5])
    if hours > 23 or minutes > 59:
        return None
    return sign * timedelta(hours=hours, minutes=minutes)


def _parse_with_offset(value: str) -> datetime | None:
    """
    Parse the primary XMLTV form 'YYYYMMDDHHMMSS +HHMM'.

    The variant without the separating space ('YYYYMMDDHHMMSS+HHMM') is accepted too.
    """
    if ' ' in value:
        time_part, _, offset_part = value.partition(' ')
        offset_part = offset_part.strip()
    else:
        time_part, offset_part = value[:XMLTV_TIME_LENGTH], value[XMLTV_TIME_LENGTH:]

    if len(time_part) != XMLTV_TIME_LENGTH or not offset_part:
        return None

    offset = _parse_offset(offset_part)
    if offset is None:
        return None

    try:
        local = datetime.strptime(time_part, XMLTV_TIME_FORMAT)
    except ValueError:
        return None

    return local.replace(tzinfo=timezone(offset)).astimezone(timezone.utc)


def _parse_without_offset(value: str) -> datetime | None:
    """Parse the first 14 characters as 'YYYYMMDDHHMMSS', interpreted as UTC"""
    prefix = value[:XMLTV_TIME_LENGTH]
    if len(prefix) != XMLTV_TIME_LENGTH or not prefix.isdigit():
        return None
    try:
        return datetime.strptime(prefix, XMLTV_TIME_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        return None


def parse_xmltv_time(value: str | None) -> datetime | None:
    """
    Convert an XMLTV timestamp to a timezone-aware UTC datetime

    Tries 'YYYYMMDDHHMMSS +HHMM' first, then falls back to the 14 leading
    digits without any offset (feeds that omit or mangle the zone suffix).

    Args:
        value: XMLTV time like '20080715003000 -0600'

    Returns:
        Datetime in UTC, or None if the value cannot be parsed
    """
    if not value:
        return None

    stripped = value.strip()
    parsed = _parse_with_offset(stripped)
    if parsed is not None:
        return parsed

    return _parse_without_offset(stripped)


def parse_xmltv_time_strict(value: str) -> datetime:
    """
    Same as parse_xmltv_time but raises on failure

    Raises:
        DateFormatError: If the value is not a valid XMLTV timestamp
    """
    parsed = parse_xmltv_time(value)
    if parsed is None:
        raise DateFormatError(f"Invalid XMLTV datetime format: '{value}'")
    return parsed


def _normalize_iso8601_string(date_str: str) -> str:
    """Normalize ISO8601 string by replacing 'Z' with '+00:00'"""
    return date_str.replace('Z', '+00:00') if date_str.endswith('Z') else date_str


def parse_iso8601_to_utc(date_str: str) -> datetime:
    """
    Parse ISO8601 date string and convert to UTC datetime

    Args:
        date_str: ISO8601 datetime string (e.g., '2025-10-09T00:00:00Z' or '2025-10-09T00:00:00+01:00')

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        DateFormatError: If the date string format is invalid
    """
    try:
        normalized = _normalize_iso8601_string(date_str)
        dt = datetime.fromisoformat(normalized)
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    except (ValueError, AttributeError) as e:
        raise DateFormatError(f"Invalid ISO8601 datetime format: '{date_str}'") from e


def utc_now() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)
