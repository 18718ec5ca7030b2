"""Locale-tolerant parsing of spreadsheet cell values.

Exports arrive from several spreadsheet tools and locales, so a single
column can hold native numbers, "1,316", "12,5", "4.2 %" or a date
serial. Every helper here degrades to None instead of raising: a bad
cell must never abort a row or a sheet.
"""

import math
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Any

from dateutil import parser as dtparser

# Spreadsheet serial dates count days from this epoch; the fraction is time of day
SERIAL_EPOCH = datetime(1899, 12, 30, tzinfo=timezone.utc)
MS_PER_DAY = 24 * 60 * 60 * 1000

_WHITESPACE_RE = re.compile(r"[\s\u00a0\u2007\u202f]")
_NON_NUMERIC_RE = re.compile(r"[^0-9+\-.]")
_SERIAL_STRING_RE = re.compile(r"^\d+(\.\d+)?$")
_HEADER_SPACE_RE = re.compile(r"\s+")

# Two fill-in dates that differ in year, month and day; a string parsing to
# different values under each is missing one of those parts
_FILL_IN_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))


def normalize_header(value: Any) -> str:
    """Lowercase a header cell and collapse its whitespace and newlines."""
    if value is None:
        return ""
    text = str(value).replace("\n", " ")
    return _HEADER_SPACE_RE.sub(" ", text).strip().lower()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_number(raw: Any) -> float | int | None:
    """Parse a numeric cell.

    Native numbers pass through unchanged. Strings are cleaned in a fixed
    order: a trailing percent sign is noted (and applied at the end),
    whitespace is removed, a lone comma is read as a decimal separator and
    otherwise commas are dropped as thousands separators.

    Examples:
        "12.5%" -> 0.125
        "1,316" -> 1.316 (lone comma is a decimal separator)
        "1,316.5" -> 1316.5
        "12,5"  -> 12.5
    """
    if raw is None:
        return None
    if isinstance(raw, bool):
        return None
    if _is_number(raw):
        return raw if math.isfinite(raw) else None

    s = str(raw).strip()
    if not s:
        return None

    is_percent = s.endswith("%")
    s = s.replace("%", "")
    s = _WHITESPACE_RE.sub("", s)
    if "," in s and "." not in s:
        s = s.replace(",", ".", 1)
    else:
        s = s.replace(",", "")
    s = _NON_NUMERIC_RE.sub("", s)
    if not s:
        return None

    try:
        n = float(s)
    except ValueError:
        return None
    if not math.isfinite(n):
        return None
    return n / 100 if is_percent else n


def to_iso(value: datetime) -> str:
    """Format a datetime as UTC ISO-8601 with millisecond precision."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return f"{value:%Y-%m-%dT%H:%M:%S}.{value.microsecond // 1000:03d}Z"


def serial_to_datetime(serial: float) -> datetime:
    """Convert a spreadsheet serial date to an aware UTC datetime.

    Raises:
        OverflowError: If the serial is outside the representable range.
    """
    return SERIAL_EPOCH + timedelta(milliseconds=round(serial * MS_PER_DAY))


def _serial_to_iso(serial: float) -> str | None:
    if not math.isfinite(serial):
        return None
    try:
        return to_iso(serial_to_datetime(serial))
    except (OverflowError, ValueError):
        return None


def parse_date(raw: Any) -> str | None:
    """Parse a date cell into an ISO-8601 UTC string.

    Handles native datetimes, spreadsheet serial numbers (numeric cells and
    pure-digit strings) and free-text dates. Naive values are read as UTC.
    Free text lacking a year, month or day ("Monday", "March") is None.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, datetime):
        return to_iso(raw)
    if isinstance(raw, date):
        return to_iso(datetime.combine(raw, time.min))
    if _is_number(raw):
        return _serial_to_iso(float(raw))

    s = str(raw).strip()
    if not s:
        return None
    if _SERIAL_STRING_RE.match(s):
        return _serial_to_iso(float(s))

    try:
        first, second = (dtparser.parse(s, default=d) for d in _FILL_IN_DEFAULTS)
    except (ValueError, OverflowError):
        return None
    if first != second:
        return None
    return to_iso(first)
