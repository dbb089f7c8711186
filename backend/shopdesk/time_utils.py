from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional, Union


EPOCH = datetime(1970, 1, 1)


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
    return normalize_utc(dt)


def normalize_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken as UTC; aware ones are converted and stripped."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def coerce_instant(value: Union[datetime, str, None]) -> Optional[datetime]:
    """
    Best-effort conversion of a stored record timestamp to UTC-naive.

    Returns None instead of raising when the value is missing or unparseable,
    so aggregation callers can skip the record.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return normalize_utc(value)
    if isinstance(value, str):
        try:
            return parse_iso_datetime(value)
        except ValueError:
            return None
    return None


def parse_iso_date(value: Union[date, str, None]) -> Optional[date]:
    """Accept a date, a datetime or a "YYYY-MM-DD" string."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = value.strip()
    if not s:
        return None
    return date.fromisoformat(s[:10])


def to_utc_z(dt: Optional[datetime], *, millis: bool = False) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC. millis=True always renders
    (truncated) milliseconds.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc)
    if millis or (dt_utc.microsecond % 1000 == 0 and dt_utc.microsecond):
        text = dt_utc.isoformat(timespec="milliseconds")
    else:
        text = dt_utc.replace(microsecond=0).isoformat()
    return text.replace("+00:00", "Z")
