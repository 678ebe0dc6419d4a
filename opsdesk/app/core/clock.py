"""
Time helpers shared by the domain modules.

All instants are handled as timezone-aware UTC datetimes. Rows read back
from SQLite come out naive; those are treated as UTC.
"""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a datetime to aware UTC, passing None through."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_iso_z(value: datetime) -> str:
    """Render an instant as ISO-8601 with a trailing Z."""
    return as_utc(value).isoformat().replace("+00:00", "Z")
