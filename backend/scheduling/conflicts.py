"""Half-open interval overlap detection between slot sets."""

from datetime import datetime
from typing import Iterable, Protocol, Sequence, TypeVar

from backend.scheduling.time_arithmetic import ensure_utc


class TimeRange(Protocol):
    slot_start_time: datetime
    slot_end_time: datetime


SlotT = TypeVar('SlotT', bound=TimeRange)


def slots_overlap(first: TimeRange, second: TimeRange) -> bool:
    """Touching boundaries do not overlap."""
    first_start, first_end = ensure_utc(first.slot_start_time), ensure_utc(first.slot_end_time)
    second_start, second_end = ensure_utc(second.slot_start_time), ensure_utc(second.slot_end_time)
    return first_start < second_end and second_start < first_end


def check_overlap(new_slots: Sequence[SlotT], existing_slots: Iterable[TimeRange]) -> list[SlotT]:
    """Return the new slots that overlap at least one existing slot."""
    existing = list(existing_slots)
    overlapping: list[SlotT] = []

    for new_slot in new_slots:
        for existing_slot in existing:
            if slots_overlap(new_slot, existing_slot):
                overlapping.append(new_slot)
                break

    return overlapping


def overlapping_pairs(
    new_slots: Sequence[TimeRange],
    existing_slots: Sequence[TimeRange],
) -> set[tuple[int, int]]:
    """Index pairs ``(new, existing)`` of every overlapping combination."""
    return {
        (new_index, existing_index)
        for new_index, new_slot in enumerate(new_slots)
        for existing_index, existing_slot in enumerate(existing_slots)
        if slots_overlap(new_slot, existing_slot)
    }


def self_overlaps(slots: Sequence[SlotT]) -> list[SlotT]:
    """Slots that start before an earlier slot of the same set has ended."""
    ordered = sorted(slots, key=lambda slot: ensure_utc(slot.slot_start_time))
    overlapping: list[SlotT] = []
    latest_end = None

    for slot in ordered:
        if latest_end is not None and ensure_utc(slot.slot_start_time) < latest_end:
            overlapping.append(slot)
        slot_end = ensure_utc(slot.slot_end_time)
        if latest_end is None or slot_end > latest_end:
            latest_end = slot_end

    return overlapping
