"""
Datetime utilities.

Provides timezone-aware datetime functions.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """
    Get current UTC datetime with timezone info.

    Returns:
        Current datetime in UTC with timezone awareness
    """
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """
    Attach UTC to naive datetimes, convert aware ones to UTC.

    Args:
        value: Datetime from the store

    Returns:
        Timezone-aware UTC datetime
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_wire(value: datetime | None) -> str:
    """
    Format timestamp for API responses (ISO 8601, millisecond precision, Z).

    Args:
        value: Datetime or None

    Returns:
        ISO string like 2025-01-01T12:00:00.000Z, or "" when missing
    """
    if value is None:
        return ""
    value = ensure_utc(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"
