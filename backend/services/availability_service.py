"""Provider availability orchestration.

Creation runs validate -> generate -> conflict check -> insert inside one
transaction. The provider row is locked first so two concurrent requests
for the same provider cannot both pass the conflict check.
"""

import logging
from datetime import date

from sqlalchemy.orm import Session

from backend.core import config
from backend.core.exceptions import ConflictError, InvalidRequestError, NotFoundError
from backend.models.availability import AppointmentSlot, ProviderAvailability
from backend.repositories.availability_repository import AvailabilityRepository
from backend.scheduling import slot_generator
from backend.scheduling.conflicts import check_overlap, self_overlaps
from backend.scheduling.slot_generator import GeneratedSlot, SlotGenerationConfig
from backend.scheduling.time_arithmetic import ensure_utc, to_naive_utc, utc_day_bounds
from backend.schemas.availability import (
    AvailabilityStatsResponse,
    AvailabilitySummaryResponse,
    CreateAvailabilityRequest,
    CreateAvailabilityResponse,
    DateRangeResponse,
    DeleteSlotResponse,
    ProviderAvailabilityResponse,
    SlotResponse,
    UpdateSlotRequest,
)

logger = logging.getLogger(__name__)

DEFAULT_DELETE_REASON = 'Provider request'


def build_generation_config(request: CreateAvailabilityRequest) -> SlotGenerationConfig:
    return SlotGenerationConfig(
        start_time=request.start_time,
        end_time=request.end_time,
        slot_duration=request.slot_duration,
        break_duration=request.break_duration,
        timezone=request.timezone,
        date=request.date,
    )


def resolve_recurrence_end_date(request: CreateAvailabilityRequest, default_months: int | None = None) -> date:
    if request.recurrence_end_date is not None:
        return request.recurrence_end_date
    months = default_months if default_months is not None else config.DEFAULT_RECURRENCE_MONTHS
    return slot_generator.add_months(request.date, months)


def validate_availability_request(request: CreateAvailabilityRequest) -> list[str]:
    errors = slot_generator.validate_slot_generation(build_generation_config(request))

    if request.is_recurring and request.recurrence_pattern is None:
        errors.append('Recurrence pattern is required for recurring availability.')

    if request.recurrence_end_date is not None and request.recurrence_end_date < request.date:
        errors.append('Recurrence end date cannot be before the availability date.')

    return errors


def generate_requested_slots(
    request: CreateAvailabilityRequest,
    default_months: int | None = None,
) -> tuple[list[GeneratedSlot], date]:
    generation_config = build_generation_config(request)

    if request.is_recurring and request.recurrence_pattern:
        end_date = resolve_recurrence_end_date(request, default_months)
        slots = slot_generator.generate_recurring_slots(generation_config, request.recurrence_pattern, end_date)
        return slots, end_date

    return slot_generator.generate_slots_for_day(generation_config), request.date


def find_conflicting_slots(
    repository: AvailabilityRepository,
    provider_id: str,
    slots: list[GeneratedSlot],
) -> list[GeneratedSlot]:
    if not slots:
        return []

    existing = repository.find_slots(
        provider_id,
        range_start=min(slot.slot_start_time for slot in slots),
        range_end=max(slot.slot_end_time for slot in slots),
        exclude_status='cancelled',
    )
    if not existing:
        return []

    conflicts: list[GeneratedSlot] = []
    for day_slots in slot_generator.group_slots_by_date(slots).values():
        day_start = day_slots[0].slot_start_time
        day_end = day_slots[-1].slot_end_time
        same_day = [
            slot for slot in existing
            if ensure_utc(slot.slot_start_time) < day_end and ensure_utc(slot.slot_end_time) > day_start
        ]
        conflicts.extend(check_overlap(day_slots, same_day))

    return conflicts


def create_availability(
    db: Session,
    provider_id: str,
    request: CreateAvailabilityRequest,
    default_months: int | None = None,
) -> CreateAvailabilityResponse:
    repository = AvailabilityRepository(db)

    try:
        provider = repository.find_provider(provider_id, for_update=True)
        if provider is None:
            raise NotFoundError('Provider not found.')

        errors = validate_availability_request(request)
        if errors:
            logger.warning('Rejected availability for provider %s: %s', provider_id, errors)
            raise InvalidRequestError('Invalid availability request.', errors)

        slots, end_date = generate_requested_slots(request, default_months)

        conflicts = self_overlaps(slots) or find_conflicting_slots(repository, provider_id, slots)
        if conflicts:
            logger.warning('Found %s overlapping slots for provider %s', len(conflicts), provider_id)
            raise ConflictError(
                f'Found {len(conflicts)} overlapping slots. Please choose a different time or date.',
                overlap_count=len(conflicts),
            )

        record = ProviderAvailability(
            provider_id=provider_id,
            date=request.date,
            start_time=request.start_time,
            end_time=request.end_time,
            timezone=request.timezone,
            is_recurring=request.is_recurring,
            recurrence_pattern=request.recurrence_pattern,
            recurrence_end_date=end_date if request.is_recurring else None,
            slot_duration=request.slot_duration,
            break_duration=request.break_duration,
            appointment_type=request.appointment_type,
            location=request.location.model_dump(exclude_none=True),
            pricing=request.pricing.model_dump(exclude_none=True) if request.pricing else None,
            special_requirements=list(request.special_requirements),
            notes=request.notes,
            max_appointments_per_slot=request.max_appointments_per_slot,
        )
        slot_rows = [
            AppointmentSlot(
                provider_id=provider_id,
                slot_start_time=to_naive_utc(slot.slot_start_time),
                slot_end_time=to_naive_utc(slot.slot_end_time),
                appointment_type=request.appointment_type,
            )
            for slot in slots
        ]

        availability, slots_created = repository.create_availability_with_slots(record, slot_rows)
        availability_id = availability.id
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info('Created %s slots for provider %s', slots_created, provider_id)

    return CreateAvailabilityResponse(
        availability_id=availability_id,
        slots_created=slots_created,
        date_range=DateRangeResponse(start=request.date, end=end_date),
    )


def _slot_response(slot: AppointmentSlot) -> SlotResponse:
    return SlotResponse(
        id=slot.id,
        status=slot.status,
        appointment_type=slot.appointment_type,
        slot_start_time=ensure_utc(slot.slot_start_time),
        slot_end_time=ensure_utc(slot.slot_end_time),
    )


def _load_mutable_slot(repository: AvailabilityRepository, slot_id: str, provider_id: str, action: str) -> AppointmentSlot:
    slot = repository.find_slot(slot_id, provider_id)

    if slot is None:
        raise NotFoundError('Slot not found.')

    if slot.status == 'booked':
        raise ConflictError(f'Cannot {action} booked slot.')

    return slot


def update_slot(
    db: Session,
    slot_id: str,
    provider_id: str,
    request: UpdateSlotRequest,
) -> SlotResponse:
    repository = AvailabilityRepository(db)

    try:
        slot = _load_mutable_slot(repository, slot_id, provider_id, 'update')

        patch = {}
        if request.appointment_type is not None:
            patch['appointment_type'] = request.appointment_type
        if request.status is not None:
            patch['status'] = request.status

        repository.update_slot(slot, patch)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info('Updated slot %s for provider %s', slot_id, provider_id)

    return _slot_response(slot)


def delete_slot(
    db: Session,
    slot_id: str,
    provider_id: str,
    delete_recurring: bool = False,
    reason: str | None = None,
) -> DeleteSlotResponse:
    """Delete one slot, or every non-booked slot of its recurring series.

    Booked siblings survive a series delete; cancelling future availability
    never cancels confirmed appointments.
    """
    repository = AvailabilityRepository(db)

    try:
        slot = _load_mutable_slot(repository, slot_id, provider_id, 'delete')
        availability = slot.availability

        series_cancelled = bool(delete_recurring and availability is not None and availability.is_recurring)
        if series_cancelled:
            deleted_slots = repository.delete_slots_by_availability(availability.id, exclude_status='booked')
            repository.update_availability_status(availability.id, 'cancelled')
        else:
            repository.delete_slot(slot)
            deleted_slots = 1

        db.commit()
    except Exception:
        db.rollback()
        raise

    if series_cancelled:
        logger.info('Deleted recurring availability %s for provider %s', availability.id, provider_id)
    else:
        logger.info('Deleted slot %s for provider %s', slot_id, provider_id)

    return DeleteSlotResponse(
        message='Slot deleted successfully',
        reason=reason or DEFAULT_DELETE_REASON,
        deleted_slots=deleted_slots,
        series_cancelled=series_cancelled,
    )


def list_provider_availability(
    db: Session,
    provider_id: str,
    start_date: date | None = None,
    end_date: date | None = None,
) -> ProviderAvailabilityResponse:
    repository = AvailabilityRepository(db)

    if repository.find_provider(provider_id) is None:
        raise NotFoundError('Provider not found.')

    records = repository.list_availability(provider_id, start_date, end_date)
    counts = repository.count_slots_by_availability([record.id for record in records])

    availabilities = []
    for record in records:
        total = sum(count for (availability_id, _), count in counts.items() if availability_id == record.id)
        availabilities.append(
            AvailabilitySummaryResponse(
                id=record.id,
                date=record.date,
                start_time=record.start_time,
                end_time=record.end_time,
                timezone=record.timezone,
                status=record.status,
                is_recurring=record.is_recurring,
                recurrence_pattern=record.recurrence_pattern,
                appointment_type=record.appointment_type,
                location=record.location,
                pricing=record.pricing,
                available_slots=counts.get((record.id, 'available'), 0),
                total_slots=total,
            )
        )

    return ProviderAvailabilityResponse(provider_id=provider_id, availabilities=availabilities)


def calculate_booking_rate(booked: int, total: int) -> float:
    if total == 0:
        return 0.0
    return booked / total * 100


def get_availability_stats(
    db: Session,
    provider_id: str,
    start_date: date | None = None,
    end_date: date | None = None,
) -> AvailabilityStatsResponse:
    repository = AvailabilityRepository(db)

    if repository.find_provider(provider_id) is None:
        raise NotFoundError('Provider not found.')

    range_start = utc_day_bounds(start_date)[0] if start_date else None
    range_end = utc_day_bounds(end_date)[1] if end_date else None

    total = repository.count_slots(provider_id, range_start, range_end)
    booked = repository.count_slots(provider_id, range_start, range_end, status='booked')
    available = repository.count_slots(provider_id, range_start, range_end, status='available')

    return AvailabilityStatsResponse(
        total_slots=total,
        booked_slots=booked,
        available_slots=available,
        booking_rate=calculate_booking_rate(booked, total),
    )
