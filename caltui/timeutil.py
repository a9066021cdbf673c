"""
Time normalization for calendar events

Events carry either an all-day calendar date or a zoned instant. Everything
here resolves those into timezone-aware datetimes in a target timezone and
answers day-membership questions. Malformed event times never raise: they
resolve to "now" in the target timezone.
"""

import os
import re
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from functools import lru_cache
from typing import List, Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .events import CalendarEvent, EventTime

MINUTES_PER_DAY = 24 * 60

TimezoneLike = Union[str, tzinfo, None]

_OFFSET_RE = re.compile(r"^([+-])(\d{2}):?(\d{2})$")


def get_system_timezone() -> str:
    """Get the system timezone from environment or detect from system"""
    # First check TZ environment variable
    tz = os.environ.get('TZ')
    if tz:
        return tz

    local_tz = datetime.now().astimezone().tzinfo
    # Zone name attribute differs between pytz-style and zoneinfo objects
    if hasattr(local_tz, 'zone'):
        return local_tz.zone
    if hasattr(local_tz, 'key'):
        return local_tz.key

    # Fallback to UTC if we can't detect
    return 'UTC'


@lru_cache(maxsize=64)
def _zone_from_name(name: str) -> tzinfo:
    low = name.lower()
    if low in ('local', 'system'):
        return datetime.now().astimezone().tzinfo or timezone.utc
    if low in ('utc', 'z', 'gmt'):
        return timezone.utc

    # Fixed offsets: +HH:MM, +HHMM, -HH:MM, -HHMM
    m = _OFFSET_RE.match(name)
    if m:
        sign_s, hh_s, mm_s = m.groups()
        hh, mm = int(hh_s), int(mm_s)
        if hh > 23 or mm > 59:
            raise ValueError(f"Invalid timezone offset: {name!r}")
        sign = 1 if sign_s == '+' else -1
        return timezone(timedelta(minutes=sign * (hh * 60 + mm)))

    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Invalid timezone identifier: {name!r}") from e


def get_zone(tz: TimezoneLike) -> tzinfo:
    """Resolve a timezone name (or pass through a tzinfo)

    Raises ValueError for unknown identifiers.
    """
    if isinstance(tz, tzinfo):
        return tz
    name = (tz or '').strip() or 'local'
    return _zone_from_name(name)


def zone_name(tz: TimezoneLike) -> str:
    if isinstance(tz, str) and tz:
        return tz
    if isinstance(tz, tzinfo):
        return getattr(tz, 'key', None) or str(tz)
    return 'local'


def as_utc(dt: datetime) -> datetime:
    # Aware datetimes sharing a tzinfo compare and subtract on wall-clock
    # values, so interval math always happens in UTC.
    return dt.astimezone(timezone.utc)


def _parse_iso(value: str) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
    except (ValueError, AttributeError):
        return None


def _parse_date(value: str) -> Optional[date]:
    try:
        return date.fromisoformat(value.strip()[:10])
    except (ValueError, AttributeError):
        return None


def now_in(tz: TimezoneLike) -> datetime:
    return datetime.now(get_zone(tz))


def as_date(day: Union[date, datetime], tz: TimezoneLike = None) -> date:
    """Calendar date of a date or datetime, in tz for aware datetimes"""
    if isinstance(day, datetime):
        if day.tzinfo is not None and tz is not None:
            return day.astimezone(get_zone(tz)).date()
        return day.date()
    return day


def start_of_day(day: Union[date, datetime], tz: TimezoneLike) -> datetime:
    zone = get_zone(tz)
    d = as_date(day, zone)
    return datetime.combine(d, time(), tzinfo=zone)


def day_bounds(day: Union[date, datetime], tz: TimezoneLike) -> Tuple[datetime, datetime]:
    """[start of day, start of next day) in tz"""
    zone = get_zone(tz)
    d = as_date(day, zone)
    return start_of_day(d, zone), start_of_day(d + timedelta(days=1), zone)


def resolve_time(event_time: EventTime, tz: TimezoneLike) -> datetime:
    """Resolve an event start/end into an aware datetime in tz

    A zoned instant is read in its own source timezone (tz when it has none)
    and converted to tz. A bare date is start of day in tz. Anything else
    falls back to now.
    """
    zone = get_zone(tz)

    if event_time.date_time:
        parsed = _parse_iso(event_time.date_time)
        if parsed is None:
            return now_in(zone)
        if parsed.tzinfo is None:
            source = zone
            if event_time.time_zone:
                try:
                    source = get_zone(event_time.time_zone)
                except ValueError:
                    source = zone
            parsed = parsed.replace(tzinfo=source)
        return parsed.astimezone(zone)

    if event_time.date:
        parsed_date = _parse_date(event_time.date)
        if parsed_date is None:
            return now_in(zone)
        return start_of_day(parsed_date, zone)

    return now_in(zone)


def event_start(event: CalendarEvent, tz: TimezoneLike) -> datetime:
    return resolve_time(event.start, tz)


def event_end(event: CalendarEvent, tz: TimezoneLike) -> datetime:
    return resolve_time(event.end, tz)


def intervals_overlap(start: datetime, end: datetime, other_start: datetime, other_end: datetime) -> bool:
    """Closed-open interval overlap; an inverted interval overlaps nothing"""
    start, end = as_utc(start), as_utc(end)
    if end < start:
        return False
    return start < as_utc(other_end) and end > as_utc(other_start)


def falls_on_day(event: CalendarEvent, day: Union[date, datetime], tz: TimezoneLike) -> bool:
    """Check if event falls on a specific day

    All-day events use exclusive end dates: start 2024-02-05 / end 2024-02-07
    covers Feb 5 and Feb 6 only, whatever the timezone.
    """
    zone = get_zone(tz)
    d = as_date(day, zone)

    if event.start.date and event.end.date:
        start_date = _parse_date(event.start.date)
        end_date = _parse_date(event.end.date)
        if start_date is not None and end_date is not None:
            return start_date <= d < end_date

    day_start, day_end = day_bounds(d, zone)
    return intervals_overlap(event_start(event, zone), event_end(event, zone), day_start, day_end)


def minutes_from_midnight(dt: datetime) -> int:
    return dt.hour * 60 + dt.minute


def hour_bucket(dt: datetime) -> int:
    return dt.hour


def duration_minutes(start: datetime, end: datetime) -> int:
    return int((as_utc(end) - as_utc(start)).total_seconds() // 60)


def now_minutes(tz: TimezoneLike, now: Optional[datetime] = None) -> int:
    current = now.astimezone(get_zone(tz)) if now is not None else now_in(tz)
    return minutes_from_midnight(current)


def round_to_nearest_hour(dt: datetime) -> datetime:
    top = dt.replace(minute=0, second=0, microsecond=0)
    if dt.minute >= 30:
        return top + timedelta(hours=1)
    return top


def format_time(dt: datetime) -> str:
    return dt.strftime('%H:%M')


def format_time_range(start: datetime, end: datetime) -> str:
    return f"{format_time(start)} – {format_time(end)}"


def format_day_short(day: Union[date, datetime]) -> str:
    """e.g. "Mon 5" """
    return f"{day.strftime('%a')} {day.day}"


def format_day_header(day: Union[date, datetime]) -> str:
    """e.g. "Monday, February 5" """
    return f"{day.strftime('%A, %B')} {day.day}"


def format_hour_label(hour: int) -> str:
    hour = hour % 24
    suffix = 'am' if hour < 12 else 'pm'
    display = hour % 12 or 12
    return f"{display}{suffix}"


def days_range(center: Union[date, datetime], before: int = 7, after: int = 7) -> List[date]:
    """Consecutive dates from center-before to center+after inclusive"""
    c = as_date(center)
    return [c + timedelta(days=i) for i in range(-before, after + 1)]
