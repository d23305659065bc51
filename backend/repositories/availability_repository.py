"""SQLAlchemy-backed persistence for providers, availability and slots.

The repository never commits; callers own the transaction boundary.
"""

from datetime import date, datetime
from typing import Iterable

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from backend.models.availability import AppointmentSlot, ProviderAvailability
from backend.models.provider import Provider
from backend.scheduling.time_arithmetic import to_naive_utc


class AvailabilityRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def find_provider(self, provider_id: str, for_update: bool = False) -> Provider | None:
        query = self.db.query(Provider).filter(Provider.id == provider_id)
        if for_update:
            # Serializes concurrent availability writes for one provider.
            query = query.with_for_update()
        return query.first()

    def find_slot(self, slot_id: str, provider_id: str) -> AppointmentSlot | None:
        return self.db.query(AppointmentSlot).options(
            joinedload(AppointmentSlot.availability),
        ).filter(
            AppointmentSlot.id == slot_id,
            AppointmentSlot.provider_id == provider_id,
        ).first()

    def find_slots(
        self,
        provider_id: str,
        range_start: datetime,
        range_end: datetime,
        status: str | None = None,
        exclude_status: str | None = None,
    ) -> list[AppointmentSlot]:
        """Slots intersecting ``[range_start, range_end)``, ordered by start."""
        query = self.db.query(AppointmentSlot).filter(
            AppointmentSlot.provider_id == provider_id,
            AppointmentSlot.slot_start_time < to_naive_utc(range_end),
            AppointmentSlot.slot_end_time > to_naive_utc(range_start),
        )
        if status is not None:
            query = query.filter(AppointmentSlot.status == status)
        if exclude_status is not None:
            query = query.filter(AppointmentSlot.status != exclude_status)
        return query.order_by(AppointmentSlot.slot_start_time.asc()).all()

    def create_availability_with_slots(
        self,
        record: ProviderAvailability,
        slots: Iterable[AppointmentSlot],
    ) -> tuple[ProviderAvailability, int]:
        self.db.add(record)
        self.db.flush()

        created = 0
        for slot in slots:
            slot.availability_id = record.id
            self.db.add(slot)
            created += 1

        self.db.flush()
        return record, created

    def update_slot(self, slot: AppointmentSlot, patch: dict) -> AppointmentSlot:
        for field_name, value in patch.items():
            setattr(slot, field_name, value)
        self.db.flush()
        return slot

    def delete_slot(self, slot: AppointmentSlot) -> None:
        self.db.delete(slot)
        self.db.flush()

    def delete_slots_by_availability(self, availability_id: str, exclude_status: str) -> int:
        return self.db.query(AppointmentSlot).filter(
            AppointmentSlot.availability_id == availability_id,
            AppointmentSlot.status != exclude_status,
        ).delete(synchronize_session=False)

    def update_availability_status(self, availability_id: str, status: str) -> None:
        self.db.query(ProviderAvailability).filter(
            ProviderAvailability.id == availability_id,
        ).update({ProviderAvailability.status: status}, synchronize_session=False)

    def count_slots(
        self,
        provider_id: str,
        range_start: datetime | None = None,
        range_end: datetime | None = None,
        status: str | None = None,
    ) -> int:
        query = self.db.query(func.count(AppointmentSlot.id)).filter(
            AppointmentSlot.provider_id == provider_id,
        )
        if range_start is not None:
            query = query.filter(AppointmentSlot.slot_start_time >= to_naive_utc(range_start))
        if range_end is not None:
            query = query.filter(AppointmentSlot.slot_start_time < to_naive_utc(range_end))
        if status is not None:
            query = query.filter(AppointmentSlot.status == status)
        return query.scalar() or 0

    def list_availability(
        self,
        provider_id: str,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[ProviderAvailability]:
        query = self.db.query(ProviderAvailability).filter(
            ProviderAvailability.provider_id == provider_id,
        )
        if start_date is not None:
            query = query.filter(ProviderAvailability.date >= start_date)
        if end_date is not None:
            query = query.filter(ProviderAvailability.date <= end_date)
        return query.order_by(ProviderAvailability.date.asc(), ProviderAvailability.start_time.asc()).all()

    def count_slots_by_availability(self, availability_ids: list[str]) -> dict[tuple[str, str], int]:
        if not availability_ids:
            return {}
        rows = self.db.query(
            AppointmentSlot.availability_id,
            AppointmentSlot.status,
            func.count(AppointmentSlot.id),
        ).filter(
            AppointmentSlot.availability_id.in_(availability_ids),
        ).group_by(AppointmentSlot.availability_id, AppointmentSlot.status).all()
        return {(availability_id, status): count for availability_id, status, count in rows}

    def search_available_slots(
        self,
        range_start: datetime | None = None,
        range_end: datetime | None = None,
        provider_id: str | None = None,
        appointment_type: str | None = None,
        min_end_time: datetime | None = None,
    ) -> list[AppointmentSlot]:
        """Store-level search: available slots only, start in ``[range_start, range_end)``."""
        query = self.db.query(AppointmentSlot).options(
            joinedload(AppointmentSlot.availability).joinedload(ProviderAvailability.provider),
        ).filter(AppointmentSlot.status == 'available')

        if range_start is not None:
            query = query.filter(AppointmentSlot.slot_start_time >= to_naive_utc(range_start))
        if range_end is not None:
            query = query.filter(AppointmentSlot.slot_start_time < to_naive_utc(range_end))
        if provider_id:
            query = query.filter(AppointmentSlot.provider_id == provider_id)
        if appointment_type:
            query = query.filter(AppointmentSlot.appointment_type == appointment_type)
        if min_end_time is not None:
            query = query.filter(AppointmentSlot.slot_end_time >= to_naive_utc(min_end_time))

        return query.order_by(AppointmentSlot.slot_start_time.asc(), AppointmentSlot.id.asc()).all()
