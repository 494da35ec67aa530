import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request, status
from pydantic import BaseModel, field_serializer
from sqlalchemy.orm import Session

from cali.auth.dependencies import get_current_user_id, get_settings
from cali.core.config import Settings
from cali.core.exceptions import (
    AppointmentValidationError,
    ConstraintViolationError,
    NotFoundOrUnauthorizedError,
    StorageError,
)
from cali.database import MAX_ROW_ID
from cali.models.appointment import Appointment, to_storage_time
from cali.repositories.appointment_repo import AppointmentRepository

router = APIRouter(tags=['appointments'])

logger = logging.getLogger(__name__)

NOT_FOUND_DETAIL = 'Appointment not found'
CONSTRAINT_DETAIL = 'Appointment violates a store constraint'


class AppointmentRequest(BaseModel):
    title: str = ''
    description: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None


class AppointmentResponse(BaseModel):
    id: int
    user_id: int
    title: str
    description: str | None = None
    start_time: datetime
    end_time: datetime
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True

    @field_serializer('start_time', 'end_time', 'created_at', 'updated_at')
    def serialize_utc(self, value: datetime | None) -> str | None:
        """Stored times are naive UTC; emit them as RFC 3339 with a ``Z`` designator."""
        if value is None:
            return None
        return to_storage_time(value).isoformat() + 'Z'


def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def build_appointment(data: AppointmentRequest, user_id: int, appointment_id: int | None = None) -> Appointment:
    appointment = Appointment(
        id=appointment_id,
        user_id=user_id,
        title=data.title,
        description=data.description,
        start_time=data.start_time,
        end_time=data.end_time,
    )
    try:
        appointment.validate()
    except AppointmentValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return appointment


def raise_storage_failure(action: str, exc: StorageError) -> None:
    if isinstance(exc, ConstraintViolationError):
        logger.warning('Rejected %s: %s', action, exc)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=CONSTRAINT_DETAIL) from exc

    logger.exception('Failed to %s appointment', action)
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f'Failed to {action} appointment',
    ) from exc


def resolve_list_window(start: datetime | None, end: datetime | None, window_days: int) -> tuple[datetime, datetime]:
    """Fill in a missing bound: ``start`` defaults to now, ``end`` to ``start`` plus the window."""
    start = to_storage_time(start) if start is not None else utc_now()
    end = to_storage_time(end) if end is not None else start + timedelta(days=window_days)

    if end <= start:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Query end must be after start',
        )
    return start, end


@router.get('', response_model=list[AppointmentResponse])
def list_appointments(
    start: datetime | None = Query(default=None),
    end: datetime | None = Query(default=None),
    user_id: int = Depends(get_current_user_id),
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db),
):
    window_start, window_end = resolve_list_window(start, end, settings.list_window_days)

    try:
        return AppointmentRepository(db).list(user_id, window_start, window_end)
    except StorageError as exc:
        raise_storage_failure('list', exc)


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: AppointmentRequest,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    appointment = build_appointment(data, user_id)

    try:
        return AppointmentRepository(db).create(appointment)
    except StorageError as exc:
        raise_storage_failure('create', exc)


@router.get('/{appointment_id}', response_model=AppointmentResponse)
def get_appointment(appointment_id: int = Path(ge=1, le=MAX_ROW_ID), db: Session = Depends(get_db)):
    try:
        appointment = AppointmentRepository(db).get(appointment_id)
    except StorageError as exc:
        raise_storage_failure('get', exc)

    if appointment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_DETAIL)
    return appointment


@router.put('/{appointment_id}', response_model=AppointmentResponse)
def update_appointment(
    data: AppointmentRequest,
    appointment_id: int = Path(ge=1, le=MAX_ROW_ID),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    appointment = build_appointment(data, user_id, appointment_id=appointment_id)

    try:
        return AppointmentRepository(db).update(appointment)
    except NotFoundOrUnauthorizedError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_DETAIL) from exc
    except StorageError as exc:
        raise_storage_failure('update', exc)


@router.delete('/{appointment_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_appointment(
    appointment_id: int = Path(ge=1, le=MAX_ROW_ID),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    try:
        AppointmentRepository(db).delete(appointment_id, user_id)
    except NotFoundOrUnauthorizedError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_DETAIL) from exc
    except StorageError as exc:
        raise_storage_failure('delete', exc)
