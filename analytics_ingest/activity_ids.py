"""Activity identifier decoding.

Post URLs carry a platform activity id such as
https://www.linkedin.com/feed/update/urn:li:activity:7387527938654691329

The id is a 64-bit integer whose high bits hold the creation time in Unix
milliseconds; the low 22 bits are a worker/sequence discriminator. Values
exceed the float-safe range, so decoding uses Python ints throughout.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Any

from analytics_ingest.normalize import to_iso

ACTIVITY_RE = re.compile(r"activity(?::|%3A)(\d+)", re.IGNORECASE)
DIGITS_RE = re.compile(r"[0-9]+")

# Worker + sequence bits below the millisecond timestamp
WORKER_AND_SEQUENCE_BITS = 22

_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _parse_id(value: Any) -> int | None:
    """Parse an identifier as a non-negative integer, or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, float):
        if not value.is_integer():
            return None
        parsed = int(value)
    else:
        text = str(value).strip()
        if not DIGITS_RE.fullmatch(text):
            return None
        parsed = int(text)
    return parsed if parsed >= 0 else None


def extract_activity_id(value: Any) -> str | None:
    """Extract the numeric activity id from a URL, URN or numeric cell.

    Returns:
        The digits as a string, e.g. "7387527938654691329", or None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        match = ACTIVITY_RE.search(value)
        return match.group(1) if match else None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return None


def activity_id_to_timestamp_iso(activity_id: Any) -> str | None:
    """Decode the creation timestamp embedded in an activity id."""
    parsed = _parse_id(activity_id)
    if not parsed:
        return None

    timestamp_ms = parsed >> WORKER_AND_SEQUENCE_BITS
    try:
        created = _UNIX_EPOCH + timedelta(milliseconds=timestamp_ms)
    except OverflowError:
        return None
    return to_iso(created)


def derive_activity_timestamp(value: Any) -> str | None:
    """Extract an activity id from ``value`` and decode its timestamp."""
    activity_id = extract_activity_id(value)
    if not activity_id:
        return None
    return activity_id_to_timestamp_iso(activity_id)
