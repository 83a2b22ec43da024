# marketplace/domain/clock.py
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Naive datetimes are treated as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def month_key(value: datetime) -> int:
    """Calendar month as a comparable integer (months since year 0)."""
    value = ensure_aware(value)
    return value.year * 12 + (value.month - 1)
