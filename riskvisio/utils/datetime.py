"""Datetime utilities."""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def isoformat_utc(value: datetime | None = None) -> str:
    """ISO-8601 string with a ``Z`` suffix for ``value`` (default: now).

    Naive values are taken to be UTC.
    """
    value = value or utcnow()
    if value.tzinfo is not None:
        value = value.astimezone(UTC).replace(tzinfo=None)
    return value.isoformat(timespec="milliseconds") + "Z"
