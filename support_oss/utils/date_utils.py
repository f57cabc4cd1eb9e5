"""Date manipulation utilities"""

from datetime import datetime, timedelta, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(moment: datetime) -> datetime:
    """Treat naive datetimes (e.g. from SQLite) as UTC"""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def days_since(moment: Optional[datetime], now: Optional[datetime] = None) -> Optional[int]:
    """Whole days elapsed since a timestamp, or None when unknown"""
    if moment is None:
        return None
    now = ensure_aware(now or utc_now())
    elapsed = now - ensure_aware(moment)
    return max(0, elapsed // timedelta(days=1))
