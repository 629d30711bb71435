"""Time helpers for consistent UTC timestamps."""

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Return current UTC datetime with timezone attached."""

    return datetime.now(timezone.utc)


def from_epoch_ms(value: int) -> datetime:
    """Convert exchange epoch milliseconds to an aware UTC datetime."""

    seconds, millis = divmod(int(value), 1000)
    return datetime.fromtimestamp(seconds, tz=timezone.utc) + timedelta(milliseconds=millis)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and normalize aware ones to UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
