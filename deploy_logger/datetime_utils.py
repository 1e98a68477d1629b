"""
Timestamps are stored as naive UTC datetimes and emitted as ISO 8601 with a
trailing Z.
"""
from datetime import datetime, timezone


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def format_datetime_iso(dt):
    """Render a stored timestamp as e.g. "2025-10-15T14:30:45.123456Z"; None stays None."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
