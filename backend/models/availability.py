"""Availability and appointment slot model definitions."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from backend.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _new_id() -> str:
    return str(uuid.uuid4())


class ProviderAvailability(Base):
    """A provider's bookable window, possibly recurring.

    Civil times are stored as ``HH:mm`` strings in the record's timezone.
    """
    __tablename__ = "provider_availability"

    id = Column(String(36), primary_key=True, default=_new_id)
    provider_id = Column(String(36), ForeignKey("providers.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    timezone = Column(String, nullable=False)
    is_recurring = Column(Boolean, default=False, nullable=False)
    recurrence_pattern = Column(String)
    recurrence_end_date = Column(Date)
    slot_duration = Column(Integer, default=30, nullable=False)
    break_duration = Column(Integer, default=0, nullable=False)
    status = Column(String, default='available', nullable=False)
    max_appointments_per_slot = Column(Integer, default=1, nullable=False)
    current_appointments = Column(Integer, default=0, nullable=False)
    appointment_type = Column(String, default='consultation', nullable=False)
    location = Column(JSON, nullable=False)
    pricing = Column(JSON)
    special_requirements = Column(JSON, default=list)
    notes = Column(String)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    provider = relationship("Provider", back_populates="availabilities")
    appointment_slots = relationship("AppointmentSlot", back_populates="availability")


class AppointmentSlot(Base):
    """One bookable unit of time. Start and end are naive UTC."""
    __tablename__ = "appointment_slots"

    id = Column(String(36), primary_key=True, default=_new_id)
    availability_id = Column(
        String(36),
        ForeignKey("provider_availability.id", ondelete="CASCADE"),
        nullable=False,
    )
    provider_id = Column(String(36), nullable=False)
    slot_start_time = Column(DateTime, nullable=False)
    slot_end_time = Column(DateTime, nullable=False)
    status = Column(String, default='available', nullable=False)
    patient_id = Column(String(36))
    appointment_type = Column(String, nullable=False)
    booking_reference = Column(String, unique=True)
    created_at = Column(DateTime, default=_utcnow)

    availability = relationship("ProviderAvailability", back_populates="appointment_slots")
