"""Timestamp helpers shared by services storing ISO-8601 text columns."""

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat()


def iso_in(**delta) -> str:
    """ISO timestamp `timedelta(**delta)` from now."""
    return to_iso(utc_now() + timedelta(**delta))


def parse_timestamp(value: str) -> datetime:
    """Parse a stored timestamp; naive values (SQLite datetime('now')) are UTC."""
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def is_past(value: str | None, now: datetime | None = None) -> bool:
    """True when `value` is set and earlier than `now`."""
    if not value:
        return False
    return parse_timestamp(value) < (now or utc_now())
