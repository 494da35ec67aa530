from datetime import datetime, timedelta

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from cali.core.exceptions import StorageError
from cali.repositories.appointment_repo import AppointmentRepository
from cali.routes import appointment_routes
from cali.routes.appointment_routes import (
    AppointmentRequest,
    create_appointment,
    delete_appointment,
    get_appointment,
    list_appointments,
    resolve_list_window,
    update_appointment,
)

OWNER_ID = 1


def _request(title='Standup', start=(9, 0), end=(9, 15), description=None) -> AppointmentRequest:
    return AppointmentRequest(
        title=title,
        description=description,
        start_time=datetime(2025, 3, 1, *start),
        end_time=datetime(2025, 3, 1, *end),
    )


def test_appointment_request_parses_iso_timestamps() -> None:
    request = AppointmentRequest(
        title='Standup',
        start_time='2025-03-01T09:00:00Z',
        end_time='2025-03-01T09:15:00Z',
    )

    assert request.start_time.utcoffset() == timedelta(0)
    assert request.description is None


def test_appointment_request_rejects_unparseable_times() -> None:
    with pytest.raises(ValidationError):
        AppointmentRequest(title='Standup', start_time='tomorrow-ish', end_time='2025-03-01T09:15:00')


def test_create_appointment_persists_for_current_user(appointment_db) -> None:
    appointment = create_appointment(data=_request(), user_id=OWNER_ID, db=appointment_db)

    assert appointment.id > 0
    assert appointment.user_id == OWNER_ID
    assert appointment.created_at is not None


@pytest.mark.parametrize(
    ('request_data', 'error_detail'),
    [
        (AppointmentRequest(title='', start_time=datetime(2025, 3, 1, 9), end_time=datetime(2025, 3, 1, 10)),
         'Title cannot be empty.'),
        (AppointmentRequest(title='Standup', end_time=datetime(2025, 3, 1, 10)),
         'Start time and end time are required.'),
        (AppointmentRequest(title='Standup', start_time=datetime(2025, 3, 1, 9), end_time=datetime(2025, 3, 1, 9)),
         'End time must be after start time.'),
    ],
)
def test_create_appointment_rejects_invalid_input(appointment_db, request_data, error_detail) -> None:
    with pytest.raises(HTTPException) as exception_info:
        create_appointment(data=request_data, user_id=OWNER_ID, db=appointment_db)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == error_detail


def test_create_appointment_for_unknown_user_is_a_conflict(appointment_db) -> None:
    with pytest.raises(HTTPException) as exception_info:
        create_appointment(data=_request(), user_id=42, db=appointment_db)

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail == 'Appointment violates a store constraint'


def test_get_appointment_returns_not_found_for_missing_id(appointment_db) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_appointment(appointment_id=999, db=appointment_db)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Appointment not found'


def test_get_appointment_hides_store_details(appointment_db, monkeypatch: pytest.MonkeyPatch) -> None:
    def failing_get(self, appointment_id):
        raise StorageError('failed to get appointment: database is locked')

    monkeypatch.setattr(AppointmentRepository, 'get', failing_get)

    with pytest.raises(HTTPException) as exception_info:
        get_appointment(appointment_id=1, db=appointment_db)

    assert exception_info.value.status_code == 500
    assert exception_info.value.detail == 'Failed to get appointment'


def test_update_appointment_returns_updated_row(appointment_db) -> None:
    created = create_appointment(data=_request(), user_id=OWNER_ID, db=appointment_db)

    updated = update_appointment(
        appointment_id=created.id,
        data=_request(title='Retro', start=(16, 0), end=(17, 0)),
        user_id=OWNER_ID,
        db=appointment_db,
    )

    assert updated.id == created.id
    assert updated.title == 'Retro'
    assert updated.end_time == datetime(2025, 3, 1, 17, 0)


def test_update_appointment_of_other_user_is_not_found(appointment_db, other_user) -> None:
    created = create_appointment(data=_request(), user_id=OWNER_ID, db=appointment_db)

    with pytest.raises(HTTPException) as exception_info:
        update_appointment(
            appointment_id=created.id,
            data=_request(title='Hijacked'),
            user_id=other_user.id,
            db=appointment_db,
        )

    assert exception_info.value.status_code == 404


def test_delete_appointment_by_other_user_leaves_it_retrievable(appointment_db, other_user) -> None:
    created = create_appointment(data=_request(), user_id=OWNER_ID, db=appointment_db)

    with pytest.raises(HTTPException) as exception_info:
        delete_appointment(appointment_id=created.id, user_id=other_user.id, db=appointment_db)

    assert exception_info.value.status_code == 404
    assert get_appointment(appointment_id=created.id, db=appointment_db).title == 'Standup'


def test_delete_appointment_removes_owned_row(appointment_db) -> None:
    appointment_id = create_appointment(data=_request(), user_id=OWNER_ID, db=appointment_db).id

    assert delete_appointment(appointment_id=appointment_id, user_id=OWNER_ID, db=appointment_db) is None

    with pytest.raises(HTTPException) as exception_info:
        get_appointment(appointment_id=appointment_id, db=appointment_db)
    assert exception_info.value.status_code == 404


def test_list_appointments_queries_the_requested_window(appointment_db, settings) -> None:
    first = create_appointment(data=_request(start=(9, 0), end=(9, 15)), user_id=OWNER_ID, db=appointment_db)
    second = create_appointment(data=_request(start=(11, 0), end=(12, 0)), user_id=OWNER_ID, db=appointment_db)
    create_appointment(data=_request(start=(17, 0), end=(19, 0)), user_id=OWNER_ID, db=appointment_db)

    result = list_appointments(
        start=datetime(2025, 3, 1, 8, 0),
        end=datetime(2025, 3, 1, 18, 0),
        user_id=OWNER_ID,
        settings=settings,
        db=appointment_db,
    )

    assert [appointment.id for appointment in result] == [first.id, second.id]


def test_resolve_list_window_defaults_to_now_plus_configured_days(monkeypatch: pytest.MonkeyPatch) -> None:
    now = datetime(2025, 3, 1, 12, 0)
    monkeypatch.setattr(appointment_routes, 'utc_now', lambda: now)

    assert resolve_list_window(None, None, 30) == (now, now + timedelta(days=30))
    assert resolve_list_window(datetime(2025, 1, 1), None, 7) == (datetime(2025, 1, 1), datetime(2025, 1, 8))


def test_resolve_list_window_rejects_inverted_bounds() -> None:
    with pytest.raises(HTTPException) as exception_info:
        resolve_list_window(datetime(2025, 3, 2), datetime(2025, 3, 1), 30)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Query end must be after start'
