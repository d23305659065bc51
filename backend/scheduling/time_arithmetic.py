"""Civil time-of-day arithmetic and civil <-> UTC conversion.

Civil times are 24-hour ``HH:mm`` strings with no timezone attached.
Conversion to UTC attaches an IANA zone with ``fold=0``: an ambiguous
local time (fall-back overlap) resolves to its first occurrence, and a
local time inside a spring-forward gap is read with the pre-transition
offset, which lands on the instant after the gap (02:30 on a
02:00 -> 03:00 jump becomes 03:30 local).
"""

import re
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from backend.core.exceptions import InvalidTimezoneError, TimeFormatError

CIVIL_TIME_PATTERN = re.compile(r'([01]\d|2[0-3]):([0-5]\d)')
MINUTES_PER_DAY = 24 * 60


class TimeOrder(str, Enum):
    BEFORE = 'before'
    EQUAL = 'equal'
    AFTER = 'after'


def parse_civil_time(value: str) -> time:
    if not isinstance(value, str):
        raise TimeFormatError(f'Invalid time format: {value!r}. Use HH:mm format.')

    match = CIVIL_TIME_PATTERN.fullmatch(value)
    if match is None:
        raise TimeFormatError(f'Invalid time format: {value!r}. Use HH:mm format.')

    return time(int(match.group(1)), int(match.group(2)))


def is_valid_civil_time(value: str) -> bool:
    try:
        parse_civil_time(value)
    except TimeFormatError:
        return False
    return True


def _coerce(value: str | time) -> time:
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    return parse_civil_time(value)


def to_minutes(value: str | time) -> int:
    civil = _coerce(value)
    return civil.hour * 60 + civil.minute


def from_minutes(minutes: int) -> time:
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f'{minutes} minutes does not fall within a single day.')
    return time(minutes // 60, minutes % 60)


def format_civil_time(value: time) -> str:
    return value.strftime('%H:%M')


def compare(a: str | time, b: str | time) -> TimeOrder:
    left, right = to_minutes(a), to_minutes(b)
    if left < right:
        return TimeOrder.BEFORE
    if left > right:
        return TimeOrder.AFTER
    return TimeOrder.EQUAL


def add_minutes(value: str | time, minutes: int) -> time:
    """Add minutes within one day. Crossing midnight raises ValueError."""
    return from_minutes(to_minutes(value) + minutes)


def duration_minutes(start: str | time, end: str | time) -> int:
    return to_minutes(end) - to_minutes(start)


def is_time_between(value: str | time, start: str | time, end: str | time) -> bool:
    try:
        return to_minutes(start) <= to_minutes(value) <= to_minutes(end)
    except TimeFormatError:
        return False


def is_valid_timezone(name: str) -> bool:
    if not isinstance(name, str) or not name.strip():
        return False
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return False
    return True


def get_zone(name: str) -> ZoneInfo:
    if not is_valid_timezone(name):
        raise InvalidTimezoneError(f'Invalid timezone: {name!r}.')
    return ZoneInfo(name)


def to_utc_instant(day: date, civil_time: str | time, zone_name: str) -> datetime:
    zone = get_zone(zone_name)
    local = datetime.combine(day, _coerce(civil_time), tzinfo=zone)
    return local.astimezone(timezone.utc)


def exists_in_zone(day: date, civil_time: str | time, zone_name: str) -> bool:
    """False for wall times skipped by a spring-forward transition."""
    zone = get_zone(zone_name)
    local = datetime.combine(day, _coerce(civil_time), tzinfo=zone)
    round_trip = local.astimezone(timezone.utc).astimezone(zone)
    return round_trip.replace(tzinfo=None) == local.replace(tzinfo=None)


def ensure_utc(instant: datetime) -> datetime:
    """Treat naive datetimes as UTC, as they are stored."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def to_naive_utc(instant: datetime) -> datetime:
    return ensure_utc(instant).replace(tzinfo=None)


def from_utc_instant(instant: datetime, zone_name: str) -> datetime:
    return ensure_utc(instant).astimezone(get_zone(zone_name))


def format_local_time(instant: datetime, zone_name: str) -> str:
    return from_utc_instant(instant, zone_name).strftime('%H:%M')


def utc_day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time(0, 0), tzinfo=timezone.utc)
    return start, start + timedelta(days=1)
