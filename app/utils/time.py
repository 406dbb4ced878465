"""Time utilities (UTC)."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def utc_now_naive() -> datetime:
    """
    Current time in UTC, returned as naive datetime for DB storage.
    """
    return utc_now().replace(tzinfo=None)


def to_utc_iso_db(dt: datetime) -> str:
    """
    Convert a DB timestamp to an ISO string with offset.

    DB timestamps in this app are stored as naive UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()
