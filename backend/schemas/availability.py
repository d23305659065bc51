import datetime as dt
from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from backend.core import config

RecurrencePattern = Literal['daily', 'weekly', 'monthly']
AppointmentType = Literal['consultation', 'follow_up', 'emergency', 'telemedicine']
EditableSlotStatus = Literal['available', 'blocked', 'cancelled']

MAX_NOTES_LENGTH = 1000


def _strip(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip()


class LocationSchema(BaseModel):
    type: str
    address: str
    room_number: str | None = None
    building: str | None = None
    floor: str | None = None
    instructions: str | None = None

    @field_validator('type', 'address')
    @classmethod
    def validate_required_text(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Location type and address are required.')
        return normalized


class PricingSchema(BaseModel):
    base_fee: float = Field(ge=0)
    currency: str
    insurance_accepted: bool | None = None
    consultation_fee: float | None = Field(default=None, ge=0)
    follow_up_fee: float | None = Field(default=None, ge=0)

    @field_validator('currency')
    @classmethod
    def validate_currency(cls, value: str) -> str:
        normalized = value.strip().upper()
        if not normalized:
            raise ValueError('Currency is required.')
        return normalized


class CreateAvailabilityRequest(BaseModel):
    date: date
    start_time: str
    end_time: str
    timezone: str
    slot_duration: int = Field(default=30, ge=15, le=480)
    break_duration: int = Field(default=0, ge=0, le=60)
    is_recurring: bool = False
    recurrence_pattern: RecurrencePattern | None = None
    recurrence_end_date: date | None = None
    appointment_type: AppointmentType = 'consultation'
    location: LocationSchema
    pricing: PricingSchema | None = None
    special_requirements: list[str] = Field(default_factory=list)
    notes: str | None = None
    max_appointments_per_slot: int = Field(default=1, ge=1, le=10)

    @field_validator('start_time', 'end_time', 'timezone')
    @classmethod
    def strip_text(cls, value: str) -> str:
        return value.strip()

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        normalized = _strip(value)
        if not normalized:
            return None

        if len(normalized) > MAX_NOTES_LENGTH:
            raise ValueError(f'Notes must be {MAX_NOTES_LENGTH} characters or fewer.')

        return normalized


class UpdateSlotRequest(BaseModel):
    status: EditableSlotStatus | None = None
    appointment_type: AppointmentType | None = None


class SlotSearchRequest(BaseModel):
    start_date: date | None = None
    end_date: date | None = None
    date: dt.date | None = None
    specialization: str | None = None
    location: str | None = None
    provider_id: str | None = None
    appointment_type: AppointmentType | None = None
    timezone: str | None = None
    min_duration: int | None = Field(default=None, ge=15, le=480)
    max_price: float | None = Field(default=None, ge=0, le=10000)
    virtual_only: bool = False
    in_person_only: bool = False
    limit: int = Field(default=config.SEARCH_DEFAULT_LIMIT, ge=1)
    offset: int = Field(default=0, ge=0)

    @field_validator('specialization', 'location', 'provider_id', 'timezone')
    @classmethod
    def strip_optional_text(cls, value: str | None) -> str | None:
        return _strip(value) or None

    @model_validator(mode='after')
    def validate_date_range(self) -> 'SlotSearchRequest':
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError('end_date must be on or after start_date.')
        return self


class DateRangeResponse(BaseModel):
    start: date
    end: date


class CreateAvailabilityResponse(BaseModel):
    availability_id: str
    slots_created: int
    date_range: DateRangeResponse


class AvailabilitySummaryResponse(BaseModel):
    id: str
    date: date
    start_time: str
    end_time: str
    timezone: str
    status: str
    is_recurring: bool
    recurrence_pattern: str | None = None
    appointment_type: str
    location: dict | None = None
    pricing: dict | None = None
    available_slots: int
    total_slots: int


class ProviderAvailabilityResponse(BaseModel):
    provider_id: str
    availabilities: list[AvailabilitySummaryResponse]


class SlotResponse(BaseModel):
    id: str
    status: str
    appointment_type: str
    slot_start_time: datetime
    slot_end_time: datetime

    class Config:
        from_attributes = True


class DeleteSlotResponse(BaseModel):
    message: str
    reason: str
    deleted_slots: int
    series_cancelled: bool


class SearchProviderResponse(BaseModel):
    id: str
    name: str
    specialization: str
    location: str


class SlotSearchResultResponse(BaseModel):
    id: str
    provider: SearchProviderResponse
    slot_start_time: datetime
    slot_end_time: datetime
    appointment_type: str
    location: dict | None = None
    pricing: dict | None = None
    timezone: str
    local_start_time: str | None = None
    local_end_time: str | None = None


class AvailabilityStatsResponse(BaseModel):
    total_slots: int
    booked_slots: int
    available_slots: int
    booking_rate: float


class ProviderProfileResponse(BaseModel):
    id: str
    name: str
    email: str
    specialization: str
