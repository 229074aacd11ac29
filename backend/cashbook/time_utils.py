from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Optional, Union

from .validation import ValidationError

DateLike = Union[datetime, date, str]


def truncate_to_millis(dt: datetime) -> datetime:
    """Drop sub-millisecond precision; stored timestamps carry milliseconds only."""
    return dt.replace(microsecond=dt.microsecond // 1000 * 1000)


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical, millisecond precision)."""
    return truncate_to_millis(datetime.now(timezone.utc).replace(tzinfo=None))


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DD" is midnight UTC of that day
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
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with millisecond precision and trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc)
    return dt_utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def coerce_datetime(value: DateLike, field: str = "date") -> datetime:
    """
    Normalize a caller-supplied date/datetime/ISO string to UTC-naive datetime.

    Raises ValidationError for anything that cannot be read as a point in time.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return truncate_to_millis(value.astimezone(timezone.utc).replace(tzinfo=None))
        return truncate_to_millis(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, str):
        try:
            dt = parse_iso_datetime(value)
        except ValueError:
            raise ValidationError(f"{field} must be an ISO-8601 date or datetime")
        if dt is None:
            raise ValidationError(f"{field} is required")
        return truncate_to_millis(dt)
    raise ValidationError(f"{field} must be a date or datetime")


def end_of_day(value: DateLike) -> datetime:
    """Last representable millisecond (23:59:59.999) of the calendar day of value."""
    dt = coerce_datetime(value, "end_date")
    return dt.replace(hour=23, minute=59, second=59, microsecond=999000)
