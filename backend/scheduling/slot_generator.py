"""Slot generation for a single day and across a recurrence rule."""

import calendar
import datetime as dt
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta

from backend.core.exceptions import InvalidRequestError
from backend.scheduling import time_arithmetic


@dataclass(frozen=True)
class SlotGenerationConfig:
    start_time: str
    end_time: str
    slot_duration: int
    break_duration: int
    timezone: str
    date: dt.date


@dataclass(frozen=True)
class GeneratedSlot:
    start_time: str
    end_time: str
    slot_start_time: datetime
    slot_end_time: datetime
    date: dt.date | None = None


def generate_slots_for_day(config: SlotGenerationConfig) -> list[GeneratedSlot]:
    """Lay slots back to back from start_time, separated by break_duration.

    A trailing slot that would run past end_time is dropped, not truncated.
    UTC end instants are start + slot_duration so every slot keeps its
    exact length across DST transitions. Starts that fall in a
    spring-forward gap, or that would land before the previous slot ends
    in UTC, are skipped.
    """
    step = config.slot_duration + config.break_duration
    if config.slot_duration <= 0 or step <= 0:
        raise InvalidRequestError('Slot duration must be greater than 0.')

    window_start = time_arithmetic.to_minutes(config.start_time)
    window_end = time_arithmetic.to_minutes(config.end_time)
    length = timedelta(minutes=config.slot_duration)

    slots: list[GeneratedSlot] = []
    current = window_start

    while current + config.slot_duration <= window_end:
        slot_end = current + config.slot_duration
        start_civil = time_arithmetic.from_minutes(current)
        current = slot_end + config.break_duration

        if not time_arithmetic.exists_in_zone(config.date, start_civil, config.timezone):
            continue

        slot_start_utc = time_arithmetic.to_utc_instant(config.date, start_civil, config.timezone)
        if slots and slot_start_utc < slots[-1].slot_end_time:
            continue

        slots.append(
            GeneratedSlot(
                start_time=time_arithmetic.format_civil_time(start_civil),
                end_time=time_arithmetic.format_civil_time(time_arithmetic.from_minutes(slot_end)),
                slot_start_time=slot_start_utc,
                slot_end_time=slot_start_utc + length,
                date=config.date,
            )
        )

    return slots


def next_occurrence(anchor: date, pattern: str, index: int) -> date:
    """Return occurrence ``index`` of a series starting on ``anchor``.

    Monthly occurrences keep the anchor's day of month, clamped to the
    last day of shorter months (Jan 31 -> Feb 29 -> Mar 31).
    """
    if pattern == 'daily':
        return anchor + timedelta(days=index)
    if pattern == 'weekly':
        return anchor + timedelta(weeks=index)
    if pattern == 'monthly':
        month_index = anchor.month - 1 + index
        year = anchor.year + month_index // 12
        month = month_index % 12 + 1
        last_day = calendar.monthrange(year, month)[1]
        return date(year, month, min(anchor.day, last_day))
    raise InvalidRequestError(f'Invalid recurrence pattern: {pattern!r}.')


def add_months(day: date, months: int) -> date:
    return next_occurrence(day, 'monthly', months)


def occurrence_dates(start: date, pattern: str, end_date: date) -> list[date]:
    dates: list[date] = []
    index = 0
    current = next_occurrence(start, pattern, index)

    while current <= end_date:
        dates.append(current)
        index += 1
        current = next_occurrence(start, pattern, index)

    return dates


def generate_recurring_slots(
    config: SlotGenerationConfig,
    pattern: str,
    end_date: date,
) -> list[GeneratedSlot]:
    slots: list[GeneratedSlot] = []
    for occurrence in occurrence_dates(config.date, pattern, end_date):
        slots.extend(generate_slots_for_day(replace(config, date=occurrence)))
    return slots


def validate_slot_generation(config: SlotGenerationConfig) -> list[str]:
    """Return every problem with the config; an empty list means valid."""
    errors: list[str] = []

    start_valid = time_arithmetic.is_valid_civil_time(config.start_time)
    end_valid = time_arithmetic.is_valid_civil_time(config.end_time)

    if not start_valid:
        errors.append('Invalid start time format. Use HH:mm format.')

    if not end_valid:
        errors.append('Invalid end time format. Use HH:mm format.')

    window_minutes = None
    if start_valid and end_valid:
        window_minutes = time_arithmetic.duration_minutes(config.start_time, config.end_time)
        if window_minutes <= 0:
            errors.append('End time must be after start time.')

    if config.slot_duration <= 0:
        errors.append('Slot duration must be greater than 0.')

    if config.break_duration < 0:
        errors.append('Break duration cannot be negative.')

    if not time_arithmetic.is_valid_timezone(config.timezone):
        errors.append('Invalid timezone.')

    if window_minutes is not None and window_minutes > 0 and config.slot_duration > window_minutes:
        errors.append('Slot duration cannot be greater than total availability duration.')

    return errors


def calculate_total_slots(config: SlotGenerationConfig) -> int:
    """Number of slots generate_slots_for_day produces for a valid config.

    The break after the last slot does not have to fit in the window, so
    the window is padded by one break before dividing. Whenever a break is
    set this can exceed the plain window // (slot + break). Slots
    skipped in a spring-forward gap are not subtracted.
    """
    total_minutes = time_arithmetic.duration_minutes(config.start_time, config.end_time)
    slot_with_break = config.slot_duration + config.break_duration

    if total_minutes < config.slot_duration:
        return 0

    return (total_minutes + config.break_duration) // slot_with_break


def group_slots_by_date(slots: list[GeneratedSlot]) -> dict[date, list[GeneratedSlot]]:
    grouped: dict[date, list[GeneratedSlot]] = {}
    for slot in slots:
        key = slot.date or slot.slot_start_time.date()
        grouped.setdefault(key, []).append(slot)
    return grouped


def filter_slots_by_date_range(
    slots: list[GeneratedSlot],
    start: datetime,
    end: datetime,
) -> list[GeneratedSlot]:
    start, end = time_arithmetic.ensure_utc(start), time_arithmetic.ensure_utc(end)
    return [slot for slot in slots if start <= slot.slot_start_time <= end]
