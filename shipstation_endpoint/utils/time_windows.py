"""
Time window utilities for shipment polling.

ShipStation filters shipments by calendar date only and records its dates
in a fixed zone, so watermarks have to be truncated into that zone before
querying and remote timestamps re-anchored to it before comparing.
"""

import logging
import re
from datetime import UTC, date, datetime, timedelta, tzinfo

logger = logging.getLogger(__name__)

# OData JSON dates, e.g. /Date(1417219200000)/ or /Date(1417219200000-0800)/
ODATA_DATE_RE = re.compile(r"^/Date\((-?\d+)([+-]\d{4})?\)/$")

# .NET timestamps carry 7 fractional digits
FRACTION_RE = re.compile(r"\.(\d{6})\d+")


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)


def align_to_day(dt: datetime) -> datetime:
    """Align datetime to day boundary (midnight in its own zone)."""
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def format_iso_timestamp(dt: datetime) -> str:
    """Format datetime as ISO 8601 string in UTC."""
    if not dt.tzinfo:
        dt = dt.replace(tzinfo=UTC)
    elif dt.tzinfo != UTC:
        dt = dt.astimezone(UTC)

    return dt.isoformat().replace("+00:00", "Z")


def parse_iso_timestamp(timestamp: str) -> datetime:
    """Parse ISO 8601 timestamp string to UTC datetime."""
    # Handle Z suffix
    if timestamp.endswith("Z"):
        timestamp = timestamp[:-1] + "+00:00"

    dt = datetime.fromisoformat(timestamp)

    # Ensure UTC timezone
    if not dt.tzinfo:
        dt = dt.replace(tzinfo=UTC)
    elif dt.tzinfo != UTC:
        dt = dt.astimezone(UTC)

    return dt


def remote_query_date(watermark: datetime, remote_tz: tzinfo) -> date:
    """
    Compute the ShipStation query date for a watermark.

    Args:
        watermark: Aware watermark timestamp
        remote_tz: Zone ShipStation records its dates in

    Returns:
        Calendar date in the remote zone containing the watermark

    Example:
        2014-11-29T00:38:23Z is 2014-11-28 16:38 in Los Angeles, so the
        query date is 2014-11-28.
    """
    return align_to_day(watermark.astimezone(remote_tz)).date()


def parse_remote_timestamp(value: str | None) -> datetime | None:
    """
    Parse a ShipStation timestamp without attaching a zone.

    Handles REST values ("2014-10-03T06:51:33.6270000", "2014-10-03"),
    OData JSON dates ("/Date(1412319093627)/") and ISO strings with
    offsets. Values that carry an offset come back aware; the rest stay
    naive and are wall-clock times in the remote zone.
    """
    if not value:
        return None

    match = ODATA_DATE_RE.match(value)
    if match:
        # OData serializes the remote wall clock as if it were UTC
        millis = int(match.group(1))
        return datetime(1970, 1, 1) + timedelta(milliseconds=millis)

    text = FRACTION_RE.sub(r".\1", value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    try:
        return datetime.fromisoformat(text)
    except ValueError:
        logger.warning(f"Could not parse ShipStation timestamp: {value}")
        return None


def anchor_to_zone(dt: datetime, remote_tz: tzinfo) -> datetime:
    """Attach the remote zone to naive remote timestamps."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=remote_tz)
    return dt


def format_remote_timestamp(dt: datetime | None, remote_tz: tzinfo | None = None) -> str | None:
    """Format a datetime the way ShipStation's REST API accepts it."""
    if dt is None:
        return None
    if remote_tz is not None and dt.tzinfo is not None:
        dt = dt.astimezone(remote_tz)
    return dt.replace(tzinfo=None).isoformat(timespec="seconds")


def format_duration(duration: timedelta) -> str:
    """Format timedelta as human-readable string."""
    total_seconds = duration.total_seconds()

    if total_seconds < 1:
        return f"{int(total_seconds * 1000)}ms"
    if total_seconds < 60:
        return f"{total_seconds:.1f}s"

    minutes = int(total_seconds) // 60
    seconds = int(total_seconds) % 60
    return f"{minutes}m{seconds}s"
