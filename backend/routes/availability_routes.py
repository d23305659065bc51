from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_current_provider
from backend.core import config
from backend.core.exceptions import AvailabilityError, ConflictError, InvalidRequestError, NotFoundError
from backend.database import ensure_availability_schema, ensure_slot_schema, get_db
from backend.models.provider import Provider
from backend.schemas.availability import (
    AppointmentType,
    AvailabilityStatsResponse,
    CreateAvailabilityRequest,
    CreateAvailabilityResponse,
    DeleteSlotResponse,
    ProviderAvailabilityResponse,
    SlotResponse,
    SlotSearchRequest,
    SlotSearchResultResponse,
    UpdateSlotRequest,
)
from backend.services import availability_service, slot_search

router = APIRouter(tags=['availability'])

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'


def ensure_database_ready() -> None:
    try:
        ensure_availability_schema()
        ensure_slot_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


def to_http_exception(exc: AvailabilityError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message)

    if isinstance(exc, InvalidRequestError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={'message': exc.message, 'errors': exc.errors},
        )

    if isinstance(exc, ConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.message)

    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)


def database_unavailable() -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=DATABASE_UNAVAILABLE_DETAIL)


@router.post('/availability', response_model=CreateAvailabilityResponse, status_code=status.HTTP_201_CREATED)
def create_availability(
    data: CreateAvailabilityRequest,
    current_provider: Provider = Depends(get_current_provider),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return availability_service.create_availability(db, current_provider.id, data)
    except AvailabilityError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/availability/search', response_model=list[SlotSearchResultResponse])
def search_availability(
    date: date | None = Query(default=None),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    specialization: str | None = Query(default=None),
    location: str | None = Query(default=None),
    provider_id: str | None = Query(default=None),
    appointment_type: AppointmentType | None = Query(default=None),
    timezone: str | None = Query(default=None),
    min_duration: int | None = Query(default=None, ge=15, le=480),
    max_price: float | None = Query(default=None, ge=0, le=10000),
    virtual_only: bool = Query(default=False),
    in_person_only: bool = Query(default=False),
    limit: int = Query(default=config.SEARCH_DEFAULT_LIMIT, ge=1, le=config.SEARCH_MAX_LIMIT),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    try:
        criteria = SlotSearchRequest(
            date=date,
            start_date=start_date,
            end_date=end_date,
            specialization=specialization,
            location=location,
            provider_id=provider_id,
            appointment_type=appointment_type,
            timezone=timezone,
            min_duration=min_duration,
            max_price=max_price,
            virtual_only=virtual_only,
            in_person_only=in_person_only,
            limit=limit,
            offset=offset,
        )
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=[error['msg'] for error in exc.errors()],
        ) from exc

    ensure_database_ready()

    try:
        return slot_search.search_slots(db, criteria)
    except AvailabilityError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/{provider_id}/availability', response_model=ProviderAvailabilityResponse)
def list_provider_availability(
    provider_id: str,
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return availability_service.list_provider_availability(db, provider_id, start_date, end_date)
    except AvailabilityError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/{provider_id}/availability/stats', response_model=AvailabilityStatsResponse)
def get_availability_stats(
    provider_id: str,
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return availability_service.get_availability_stats(db, provider_id, start_date, end_date)
    except AvailabilityError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.put('/availability/{slot_id}', response_model=SlotResponse)
def update_availability_slot(
    slot_id: str,
    data: UpdateSlotRequest,
    current_provider: Provider = Depends(get_current_provider),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return availability_service.update_slot(db, slot_id, current_provider.id, data)
    except AvailabilityError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.delete('/availability/{slot_id}', response_model=DeleteSlotResponse)
def delete_availability_slot(
    slot_id: str,
    delete_recurring: bool = Query(default=False),
    reason: str | None = Query(default=None, max_length=500),
    current_provider: Provider = Depends(get_current_provider),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return availability_service.delete_slot(
            db,
            slot_id,
            current_provider.id,
            delete_recurring=delete_recurring,
            reason=reason.strip() if reason else None,
        )
    except AvailabilityError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc
