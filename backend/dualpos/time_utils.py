from __future__ import annotations

from datetime import date, datetime, time, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    if dt.tzinfo is None:
        return dt.replace(tzinfo=None)

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def resolve_timezone(name: Optional[str]) -> tzinfo:
    """Named IANA zone, or the server's local zone when name is empty."""
    if name:
        return ZoneInfo(name)
    return datetime.now().astimezone().tzinfo


def parse_business_date(value: date | datetime | str) -> date:
    """Accept a date, a datetime or a 'YYYY-MM-DD' / ISO-8601 string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        s = value.strip()
        if not s:
            raise ValueError("empty date")
        if len(s) == 10:
            return date.fromisoformat(s)
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        return datetime.fromisoformat(s).date()
    raise ValueError("invalid date")


def day_bounds(
    value: date | datetime | str,
    tz_name: Optional[str] = None,
) -> tuple[datetime, datetime]:
    """
    Whole-day window for a calendar date in the business timezone.

    Returns UTC-naive (start, end) where start is 00:00:00.000 and end is
    23:59:59.999 local time. Both bounds are inclusive.
    """
    day = parse_business_date(value)
    tz = resolve_timezone(tz_name)
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day, time(23, 59, 59, 999000), tzinfo=tz)
    return (
        start.astimezone(timezone.utc).replace(tzinfo=None),
        end.astimezone(timezone.utc).replace(tzinfo=None),
    )


def range_bounds(
    start: date | datetime | str | None,
    end: date | datetime | str | None,
    tz_name: Optional[str] = None,
) -> tuple[Optional[datetime], Optional[datetime]]:
    """Start of the first day and end of the last day; missing sides stay open."""
    start_dt = day_bounds(start, tz_name)[0] if start else None
    end_dt = day_bounds(end, tz_name)[1] if end else None
    return start_dt, end_dt


def local_date_key(dt: datetime, tz_name: Optional[str] = None) -> str:
    """Calendar date ('YYYY-MM-DD') of a UTC-naive datetime in the business timezone."""
    aware = dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt
    return aware.astimezone(resolve_timezone(tz_name)).date().isoformat()
