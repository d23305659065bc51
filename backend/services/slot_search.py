"""Patient-facing search over available slots.

Store-level filters (status, dates, provider, appointment type, minimum
remaining duration) run in SQL; specialization, location, virtual and
price filters run in memory on the loaded rows. Pagination is applied
last so pages are never shortened by the in-memory filters.
"""

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from backend.core import config
from backend.core.exceptions import InvalidRequestError
from backend.models.availability import AppointmentSlot
from backend.repositories.availability_repository import AvailabilityRepository
from backend.scheduling.search_filters import SlotCandidate, apply_in_memory_filters, paginate
from backend.scheduling.time_arithmetic import ensure_utc, format_local_time, is_valid_timezone, utc_day_bounds
from backend.schemas.availability import SearchProviderResponse, SlotSearchRequest, SlotSearchResultResponse

logger = logging.getLogger(__name__)


def resolve_search_range(criteria: SlotSearchRequest) -> tuple[datetime | None, datetime | None]:
    """UTC ``[start, end)`` bounds; ``end_date`` covers its whole day."""
    if criteria.date is not None:
        return utc_day_bounds(criteria.date)

    range_start = utc_day_bounds(criteria.start_date)[0] if criteria.start_date else None
    range_end = utc_day_bounds(criteria.end_date)[1] if criteria.end_date else None
    return range_start, range_end


def effective_limit(limit: int) -> int:
    return max(1, min(limit, config.SEARCH_MAX_LIMIT))


def to_candidate(slot: AppointmentSlot) -> SlotCandidate:
    availability = slot.availability
    provider = availability.provider
    return SlotCandidate(
        id=slot.id,
        availability_id=availability.id,
        provider_id=provider.id,
        provider_name=provider.full_name,
        specialization=provider.specialization or '',
        clinic_city=provider.clinic_city or '',
        clinic_state=provider.clinic_state or '',
        slot_start_time=ensure_utc(slot.slot_start_time),
        slot_end_time=ensure_utc(slot.slot_end_time),
        appointment_type=slot.appointment_type,
        timezone=availability.timezone,
        location=availability.location,
        pricing=availability.pricing,
    )


def to_result(candidate: SlotCandidate, display_timezone: str | None = None) -> SlotSearchResultResponse:
    result = SlotSearchResultResponse(
        id=candidate.id,
        provider=SearchProviderResponse(
            id=candidate.provider_id,
            name=candidate.provider_name,
            specialization=candidate.specialization,
            location=f'{candidate.clinic_city}, {candidate.clinic_state}',
        ),
        slot_start_time=candidate.slot_start_time,
        slot_end_time=candidate.slot_end_time,
        appointment_type=candidate.appointment_type,
        location=candidate.location,
        pricing=candidate.pricing,
        timezone=candidate.timezone,
    )
    if display_timezone:
        result.local_start_time = format_local_time(candidate.slot_start_time, display_timezone)
        result.local_end_time = format_local_time(candidate.slot_end_time, display_timezone)
    return result


def search_slots(
    db: Session,
    criteria: SlotSearchRequest,
    now: datetime | None = None,
) -> list[SlotSearchResultResponse]:
    if criteria.timezone and not is_valid_timezone(criteria.timezone):
        raise InvalidRequestError('Invalid timezone.')

    now = ensure_utc(now) if now is not None else datetime.now(timezone.utc)
    range_start, range_end = resolve_search_range(criteria)
    min_end_time = now + timedelta(minutes=criteria.min_duration) if criteria.min_duration else None

    rows = AvailabilityRepository(db).search_available_slots(
        range_start=range_start,
        range_end=range_end,
        provider_id=criteria.provider_id,
        appointment_type=criteria.appointment_type,
        min_end_time=min_end_time,
    )

    candidates = apply_in_memory_filters(
        [to_candidate(row) for row in rows],
        specialization=criteria.specialization,
        location=criteria.location,
        virtual_only=criteria.virtual_only,
        in_person_only=criteria.in_person_only,
        max_price=criteria.max_price,
    )
    candidates.sort(key=lambda candidate: (candidate.slot_start_time, candidate.id))

    page = paginate(candidates, effective_limit(criteria.limit), criteria.offset)
    logger.debug('Slot search matched %s slots, returning %s', len(candidates), len(page))

    return [to_result(candidate, criteria.timezone) for candidate in page]
