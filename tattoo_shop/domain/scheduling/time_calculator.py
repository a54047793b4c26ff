"""Time parsing and interval arithmetic for scheduling"""

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from ...config import SHOP_TIMEZONE

HHMM_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")


def parse_hhmm(value: str) -> time:
    """Parse a 24h "HH:MM" wall-clock string"""
    match = HHMM_PATTERN.match(value.strip()) if value else None
    if not match:
        raise ValueError(f"Invalid time format (expected HH:MM): {value!r}")
    return time(int(match.group(1)), int(match.group(2)))


def to_utc_naive(value: datetime) -> datetime:
    """
    Normalize an instant to naive UTC, the storage representation.
    Naive inputs are assumed to already be UTC.
    """
    if value.tzinfo is None:
        return value.replace(microsecond=0)
    return value.astimezone(timezone.utc).replace(tzinfo=None, microsecond=0)


def end_time_for(start_time: datetime, duration_minutes: int) -> datetime:
    return start_time + timedelta(minutes=duration_minutes)


def intervals_overlap(
    start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime
) -> bool:
    """Half-open [start, end) overlap; touching endpoints do not overlap"""
    return start_a < end_b and end_a > start_b


def shop_zone(name: Optional[str] = None) -> ZoneInfo:
    return ZoneInfo(name or SHOP_TIMEZONE)


def weekday_index(day: date) -> int:
    """0 = Sunday ... 6 = Saturday"""
    return (day.weekday() + 1) % 7


def local_day_window(
    day: date, open_time: time, close_time: time, zone: ZoneInfo
) -> tuple[datetime, datetime]:
    """Convert a local open/close window on `day` into naive UTC instants"""
    opens = datetime.combine(day, open_time, tzinfo=zone)
    closes = datetime.combine(day, close_time, tzinfo=zone)
    return to_utc_naive(opens), to_utc_naive(closes)


def local_dates_between(start_utc: datetime, end_utc: datetime, zone: ZoneInfo) -> list[date]:
    """Calendar days (shop-local) touched by the UTC range [start_utc, end_utc]"""
    first = start_utc.replace(tzinfo=timezone.utc).astimezone(zone).date()
    last = end_utc.replace(tzinfo=timezone.utc).astimezone(zone).date()
    days = []
    current = first
    while current <= last:
        days.append(current)
        current += timedelta(days=1)
    return days


def ceil_to_interval(value: datetime, anchor: datetime, interval_minutes: int) -> datetime:
    """Round `value` up onto the grid anchor + k * interval"""
    if value <= anchor:
        return anchor
    step = timedelta(minutes=interval_minutes)
    steps = -(-(value - anchor) // step)
    return anchor + steps * step


def utcnow() -> datetime:
    """Current instant as naive UTC"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to a stored naive instant for serialization"""
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value
