from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple

from fastapi import HTTPException, status


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


# PUBLIC_INTERFACE
def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite returns them without tzinfo)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# PUBLIC_INTERFACE
def parse_date(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO date or datetime string into an aware UTC datetime.

    Raises:
        HTTPException: 400 when the value cannot be parsed.
    """
    if value is None or value == "":
        return None
    raw = value.strip()
    try:
        if len(raw) == 10:
            parsed = datetime.combine(date.fromisoformat(raw), time.min)
        else:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid date: {value}")
    return ensure_utc(parsed)


# PUBLIC_INTERFACE
def get_day_range(value: Optional[str] = None) -> Tuple[datetime, datetime]:
    """
    Return the [start, end] bounds of the calendar day containing `value` (default today, UTC).

    The end bound is 23:59:59.999 of the same day.
    """
    anchor = parse_date(value) or utcnow()
    start = anchor.replace(hour=0, minute=0, second=0, microsecond=0)
    end = start + timedelta(days=1) - timedelta(milliseconds=1)
    return start, end


def day_key(value: datetime) -> str:
    """ISO calendar day of a timestamp, used to bucket entries per day."""
    return ensure_utc(value).date().isoformat()
