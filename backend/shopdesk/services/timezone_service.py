# Overview: Timezone lookups for dashboard day boundaries.

"""
Local-day arithmetic on top of the IANA database (zoneinfo + tzdata).

Offsets are looked up for the wall time being converted, on every call,
so DST transitions are honored and nothing is cached between requests.

Invalid zone names never reach callers as errors: they are replaced by the
default zone and logged.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone as dt_timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "Asia/Karachi"

# Last representable instant of a local day; serialized at millisecond precision as .999
END_OF_DAY = time(23, 59, 59, 999999)


def _load_zone(name) -> ZoneInfo | None:
    if not isinstance(name, str) or not name.strip():
        return None
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError):
        return None


def is_valid_timezone(name) -> bool:
    return _load_zone(name) is not None


def resolve_timezone(name, default: str = DEFAULT_TIMEZONE) -> ZoneInfo:
    """
    Return the zone for name, or the default zone when name is unusable.

    Accepts an already-built ZoneInfo unchanged.
    """
    if isinstance(name, ZoneInfo):
        return name
    zone = _load_zone(name)
    if zone is not None:
        return zone

    if name:
        logger.warning("Invalid timezone %r, falling back to %s", name, default)
    fallback = _load_zone(default)
    if fallback is None:
        logger.error("Default timezone %r is invalid, using UTC", default)
        return ZoneInfo("UTC")
    return fallback


def utc_offset_minutes(zone: ZoneInfo, wall_time: datetime) -> int:
    """UTC offset of zone at the given local wall time, in minutes."""
    offset = zone.utcoffset(wall_time.replace(tzinfo=None))
    return int(offset.total_seconds() // 60) if offset is not None else 0


def local_to_utc(wall_time: datetime, zone: ZoneInfo) -> datetime:
    """Convert a naive local wall time in zone to a naive UTC instant."""
    offset = utc_offset_minutes(zone, wall_time)
    return wall_time.replace(tzinfo=None) - timedelta(minutes=offset)


def start_of_day_utc(day: date, zone: ZoneInfo) -> datetime:
    return local_to_utc(datetime.combine(day, time.min), zone)


def end_of_day_utc(day: date, zone: ZoneInfo) -> datetime:
    return local_to_utc(datetime.combine(day, END_OF_DAY), zone)


def local_date(instant: datetime, zone: ZoneInfo) -> date:
    """Calendar day an instant falls on in zone. Naive instants are UTC."""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=dt_timezone.utc)
    return instant.astimezone(zone).date()
