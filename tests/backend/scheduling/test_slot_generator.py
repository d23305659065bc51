from dataclasses import replace
from datetime import date, datetime, timedelta, timezone

import pytest

from backend.core.exceptions import InvalidRequestError
from backend.scheduling.conflicts import overlapping_pairs
from backend.scheduling.slot_generator import (
    SlotGenerationConfig,
    calculate_total_slots,
    filter_slots_by_date_range,
    generate_recurring_slots,
    generate_slots_for_day,
    group_slots_by_date,
    next_occurrence,
    occurrence_dates,
    validate_slot_generation,
)


def make_config(**overrides) -> SlotGenerationConfig:
    values = {
        'start_time': '09:00',
        'end_time': '17:00',
        'slot_duration': 30,
        'break_duration': 15,
        'timezone': 'UTC',
        'date': date(2024, 8, 1),
    }
    values.update(overrides)
    return SlotGenerationConfig(**values)


def test_full_day_with_breaks_spaces_slots_by_break() -> None:
    slots = generate_slots_for_day(make_config())

    assert len(slots) == 11
    assert (slots[0].start_time, slots[0].end_time) == ('09:00', '09:30')
    assert (slots[-1].start_time, slots[-1].end_time) == ('16:30', '17:00')
    for previous, following in zip(slots, slots[1:]):
        assert following.slot_start_time - previous.slot_end_time == timedelta(minutes=15)


def test_full_day_without_breaks_fills_window() -> None:
    slots = generate_slots_for_day(make_config(break_duration=0))

    assert len(slots) == 16
    assert slots[-1].start_time == '16:30'


def test_trailing_partial_slot_is_dropped() -> None:
    slots = generate_slots_for_day(make_config(end_time='09:40', break_duration=0))

    assert [(slot.start_time, slot.end_time) for slot in slots] == [('09:00', '09:30')]


def test_slots_carry_utc_instants_for_their_zone() -> None:
    slots = generate_slots_for_day(make_config(timezone='Asia/Kolkata', end_time='10:00', break_duration=0))

    assert slots[0].slot_start_time == datetime(2024, 8, 1, 3, 30, tzinfo=timezone.utc)
    assert slots[1].slot_end_time == datetime(2024, 8, 1, 4, 30, tzinfo=timezone.utc)
    assert all(slot.date == date(2024, 8, 1) for slot in slots)


def test_spring_forward_day_skips_missing_hour_without_overlap() -> None:
    config = make_config(
        timezone='America/New_York',
        date=date(2024, 3, 10),
        start_time='01:00',
        end_time='04:00',
        slot_duration=60,
        break_duration=0,
    )

    slots = generate_slots_for_day(config)

    assert [slot.start_time for slot in slots] == ['01:00', '03:00']
    assert [slot.slot_start_time for slot in slots] == [
        datetime(2024, 3, 10, 6, 0, tzinfo=timezone.utc),
        datetime(2024, 3, 10, 7, 0, tzinfo=timezone.utc),
    ]
    assert all(slot.slot_end_time - slot.slot_start_time == timedelta(minutes=60) for slot in slots)
    assert {pair for pair in overlapping_pairs(slots, slots) if pair[0] != pair[1]} == set()


def test_fall_back_day_keeps_every_slot() -> None:
    config = make_config(
        timezone='America/New_York',
        date=date(2024, 11, 3),
        start_time='00:00',
        end_time='03:00',
        slot_duration=60,
        break_duration=0,
    )

    slots = generate_slots_for_day(config)

    # 01:00 resolves to its first (EDT) occurrence, leaving an extra hour before 02:00 EST.
    assert [slot.slot_start_time.hour for slot in slots] == [4, 5, 7]
    assert {pair for pair in overlapping_pairs(slots, slots) if pair[0] != pair[1]} == set()


@pytest.mark.parametrize(
    'overrides',
    [
        {},
        {'break_duration': 0},
        {'break_duration': 10, 'slot_duration': 20},
        {'start_time': '08:15', 'end_time': '12:50', 'slot_duration': 45, 'break_duration': 5},
        {'start_time': '09:00', 'end_time': '09:40', 'break_duration': 0},
        {'start_time': '13:00', 'end_time': '13:30', 'break_duration': 60},
        {'start_time': '00:00', 'end_time': '23:59', 'slot_duration': 15, 'break_duration': 0},
    ],
)
def test_calculate_total_slots_matches_generated_count(overrides: dict) -> None:
    config = make_config(**overrides)

    assert validate_slot_generation(config) == []
    assert calculate_total_slots(config) == len(generate_slots_for_day(config))


def test_generator_rejects_non_positive_duration() -> None:
    with pytest.raises(InvalidRequestError):
        generate_slots_for_day(make_config(slot_duration=0, break_duration=0))


def test_weekly_recurrence_includes_end_date() -> None:
    config = make_config(break_duration=0, end_time='10:00')

    slots = generate_recurring_slots(config, 'weekly', date(2024, 8, 15))
    grouped = group_slots_by_date(slots)

    assert list(grouped) == [date(2024, 8, 1), date(2024, 8, 8), date(2024, 8, 15)]
    assert all(len(day_slots) == 2 for day_slots in grouped.values())
    assert slots == sorted(slots, key=lambda slot: slot.slot_start_time)


def test_daily_recurrence_steps_one_day() -> None:
    assert occurrence_dates(date(2024, 8, 30), 'daily', date(2024, 9, 2)) == [
        date(2024, 8, 30),
        date(2024, 8, 31),
        date(2024, 9, 1),
        date(2024, 9, 2),
    ]


def test_monthly_recurrence_clamps_to_month_end_and_keeps_anchor_day() -> None:
    assert occurrence_dates(date(2024, 1, 31), 'monthly', date(2024, 5, 31)) == [
        date(2024, 1, 31),
        date(2024, 2, 29),
        date(2024, 3, 31),
        date(2024, 4, 30),
        date(2024, 5, 31),
    ]


def test_monthly_recurrence_crosses_year_boundary() -> None:
    assert next_occurrence(date(2024, 11, 15), 'monthly', 3) == date(2025, 2, 15)


def test_unknown_recurrence_pattern_is_rejected() -> None:
    with pytest.raises(InvalidRequestError):
        next_occurrence(date(2024, 8, 1), 'yearly', 1)


def test_recurrence_ending_before_start_generates_nothing() -> None:
    assert generate_recurring_slots(make_config(), 'daily', date(2024, 7, 31)) == []


def test_validate_reports_every_problem() -> None:
    config = make_config(start_time='9am', end_time='25:00', slot_duration=0, break_duration=-5, timezone='Bad/Zone')

    assert validate_slot_generation(config) == [
        'Invalid start time format. Use HH:mm format.',
        'Invalid end time format. Use HH:mm format.',
        'Slot duration must be greater than 0.',
        'Break duration cannot be negative.',
        'Invalid timezone.',
    ]


def test_validate_rejects_end_not_after_start() -> None:
    assert validate_slot_generation(make_config(start_time='17:00', end_time='09:00')) == [
        'End time must be after start time.',
    ]
    assert validate_slot_generation(make_config(start_time='09:00', end_time='09:00')) == [
        'End time must be after start time.',
    ]


def test_validate_rejects_slot_longer_than_window() -> None:
    assert validate_slot_generation(make_config(end_time='09:20')) == [
        'Slot duration cannot be greater than total availability duration.',
    ]


def test_validate_is_idempotent() -> None:
    config = make_config(start_time='bad', timezone='Bad/Zone')

    assert validate_slot_generation(config) == validate_slot_generation(config)


def test_filter_slots_by_date_range_is_inclusive() -> None:
    slots = generate_recurring_slots(make_config(end_time='09:30'), 'daily', date(2024, 8, 3))

    kept = filter_slots_by_date_range(
        slots,
        datetime(2024, 8, 2, 9, 0, tzinfo=timezone.utc),
        datetime(2024, 8, 3, 9, 0),
    )

    assert [slot.date for slot in kept] == [date(2024, 8, 2), date(2024, 8, 3)]


def test_config_date_is_replaced_per_occurrence() -> None:
    config = make_config()

    assert replace(config, date=date(2024, 8, 2)).start_time == config.start_time
