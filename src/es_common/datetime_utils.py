"""UTC datetime utilities."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now. Used as the client-side column default."""
    return datetime.now(timezone.utc)


def to_iso(value: datetime | None) -> str | None:
    """ISO-8601 text for API payloads; naive values (SQLite) are read as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()
