"""
Datetime utilities.

SQLite stores naive timestamps, so everything persisted is naive UTC.
"""

from datetime import datetime, timezone

UTC = timezone.utc


def now_utc() -> datetime:
    """
    Get current UTC datetime (timezone-aware).

    Returns:
        datetime: Current UTC time with tzinfo set to UTC
    """
    return datetime.now(UTC)


def utcnow_naive() -> datetime:
    """Current UTC time without tzinfo, for SQLite columns."""
    return now_utc().replace(tzinfo=None)


def export_date_stamp(moment: datetime | None = None) -> str:
    """YYYY-MM-DD stamp used in backup filenames."""
    return (moment or now_utc()).strftime("%Y-%m-%d")


def parse_iso_datetime(value) -> datetime | None:
    """
    Parse an ISO-8601 string (``Z`` suffix allowed) into a naive UTC datetime.

    Returns None for empty or unparseable values.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(UTC).replace(tzinfo=None)
    return parsed
