"""Datetime helpers.

The store keeps naive UTC datetimes; these helpers produce and normalize them.
"""

from datetime import UTC, date, datetime


def utc_now() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(UTC).replace(tzinfo=None)


def to_naive_utc(value: date | datetime) -> datetime:
    """Normalize a date or datetime to a naive UTC datetime.

    Plain dates become midnight; aware datetimes are converted to UTC.
    """
    if not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day)
    if value.tzinfo is not None:
        return value.astimezone(UTC).replace(tzinfo=None)
    return value
