from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current time as an aware UTC datetime. Every expiry check goes through here."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
