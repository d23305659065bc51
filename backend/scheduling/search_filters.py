"""In-memory filters applied to slot search candidates.

``virtual_only`` and ``in_person_only`` are independent filters; passing
both returns their intersection, which is empty.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Sequence, TypeVar

VIRTUAL_LOCATION_TYPE = 'virtual'

T = TypeVar('T')


@dataclass
class SlotCandidate:
    id: str
    availability_id: str
    provider_id: str
    provider_name: str
    specialization: str
    clinic_city: str
    clinic_state: str
    slot_start_time: datetime
    slot_end_time: datetime
    appointment_type: str
    timezone: str
    location: dict[str, Any] | None = None
    pricing: dict[str, Any] | None = None


def _contains(haystack: str | None, needle: str) -> bool:
    return needle.lower() in (haystack or '').lower()


def matches_specialization(candidate: SlotCandidate, specialization: str) -> bool:
    return _contains(candidate.specialization, specialization)


def matches_location(candidate: SlotCandidate, location: str) -> bool:
    return _contains(candidate.clinic_city, location) or _contains(candidate.clinic_state, location)


def is_virtual(candidate: SlotCandidate) -> bool:
    return bool(candidate.location) and candidate.location.get('type') == VIRTUAL_LOCATION_TYPE


def is_in_person(candidate: SlotCandidate) -> bool:
    return bool(candidate.location) and candidate.location.get('type') != VIRTUAL_LOCATION_TYPE


def within_price(candidate: SlotCandidate, max_price: float) -> bool:
    """Slots without pricing data always pass."""
    if not candidate.pricing or candidate.pricing.get('base_fee') is None:
        return True
    return candidate.pricing['base_fee'] <= max_price


def apply_in_memory_filters(
    candidates: Sequence[SlotCandidate],
    specialization: str | None = None,
    location: str | None = None,
    virtual_only: bool = False,
    in_person_only: bool = False,
    max_price: float | None = None,
) -> list[SlotCandidate]:
    filtered = list(candidates)

    if specialization:
        filtered = [candidate for candidate in filtered if matches_specialization(candidate, specialization)]

    if location:
        filtered = [candidate for candidate in filtered if matches_location(candidate, location)]

    if virtual_only:
        filtered = [candidate for candidate in filtered if is_virtual(candidate)]

    if in_person_only:
        filtered = [candidate for candidate in filtered if is_in_person(candidate)]

    if max_price is not None:
        filtered = [candidate for candidate in filtered if within_price(candidate, max_price)]

    return filtered


def paginate(items: Sequence[T], limit: int, offset: int) -> list[T]:
    return list(items[offset:offset + limit])
