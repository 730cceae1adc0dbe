from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def now_ms() -> int:
    """Milliseconds since the epoch, the unit of every wire timestamp."""
    return int(utcnow().timestamp() * 1000)


def backup_stamp(dt: datetime | None = None) -> str:
    """ISO timestamp with ':' and '.' replaced, safe for backup names."""
    dt = dt or utcnow()
    return dt.isoformat().replace(":", "-").replace(".", "-")
