# Overview: Clock and date helpers. Audit timestamps are UTC; business dates are shop-local calendar days.

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.utcnow()


def local_now() -> datetime:
    """
    Shop-local wall-clock 'now' (naive).

    Business dates (transaction_date, sale_date, payment_date) are recorded in
    the shop's operating locale. They are never converted to UTC, so a day
    boundary always means local midnight.
    """
    return datetime.now()


def local_today() -> date:
    return local_now().date()


def parse_calendar_date(value) -> Optional[date]:
    """
    Parse a YYYY-MM-DD calendar date.

    - None / "" -> None
    - date / datetime instances pass through (datetime -> its date)
    - "YYYY-MM-DDTHH:MM..." keeps only the date part, no timezone shift

    Raises ValueError for anything else.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value).strip()
    if not s:
        return None
    s = s.split("T", 1)[0]
    return date.fromisoformat(s)


def parse_local_datetime(value) -> Optional[datetime]:
    """
    Parse an ISO-8601 string as a shop-local naive datetime.

    Unlike parse_iso_datetime, an offset is dropped without conversion:
    "2025-01-05T23:30:00+05:00" stays on 2025-01-05 23:30.
    A bare date is read as local midnight.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    s = str(value).strip()
    if not s:
        return None
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    if "T" not in s and " " not in s:
        return datetime.combine(date.fromisoformat(s), time.min)
    return datetime.fromisoformat(s).replace(tzinfo=None)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Half-open [start, end) local datetime range covering one calendar day."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def add_months(day: date, months: int) -> date:
    """Calendar month arithmetic; the day is clamped to the target month's length."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    if month == 12:
        next_month = date(year + 1, 1, 1)
    else:
        next_month = date(year, month + 1, 1)
    last_day = (next_month - timedelta(days=1)).day
    return date(year, month, min(day.day, last_day))


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


def to_local_iso(value) -> Optional[str]:
    """Serializes a business date/datetime as-is (no offset, no conversion)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.replace(microsecond=0).isoformat()
    return value.isoformat()
