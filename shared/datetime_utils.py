"""
Date/time helpers: framework-agnostic.

Everything in the service works on timezone-aware UTC datetimes. MongoDB
hands back naive datetimes unless the client is tz-aware, so values read from
storage go through ``ensure_utc`` before being compared with ``utcnow()``.
"""

from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Return *value* as an aware UTC datetime; naive values are assumed UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def start_of_month(now: datetime) -> datetime:
    """Return midnight UTC on the first day of *now*'s calendar month."""
    now = ensure_utc(now)
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
