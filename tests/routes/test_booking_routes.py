import logging
from datetime import date, datetime, time, timedelta, timezone

import pytest
from fastapi import HTTPException

from tutordesk.models.availability import AvailabilityRule
from tutordesk.models.booking import Booking
from tutordesk.models.lead import Lead
from tutordesk.routes import booking_routes
from tutordesk.routes.booking_routes import book_session, get_booking_page, list_booking_slots
from tutordesk.schemas import CreateBookingRequest
from tutordesk.services import booking_service

NOW = datetime(2026, 1, 4, 12, 0, tzinfo=timezone.utc)
MONDAY = date(2026, 1, 5)


@pytest.fixture(autouse=True)
def frozen_now(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(booking_routes, 'utcnow', lambda: NOW)


@pytest.fixture
def monday_morning(db, tutor) -> None:
    db.add(
        AvailabilityRule(
            tutor_id=tutor.id,
            day_of_week=1,
            start_time=time(9, 0),
            end_time=time(11, 0),
            session_length=45,
            buffer_time=15,
        )
    )
    db.commit()


def booking_request(**overrides) -> CreateBookingRequest:
    payload = {
        'start_ts': datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc),
        'end_ts': datetime(2026, 1, 5, 9, 45, tzinfo=timezone.utc),
        'prospect_name': 'Sam Student',
        'prospect_email': 'sam@example.com',
        'reason': 'A-level physics',
    }
    payload.update(overrides)
    return CreateBookingRequest(**payload)


def test_booking_page_lists_browsable_dates(db, tutor) -> None:
    page = get_booking_page(slug='ada', db=db)

    assert page.slug == 'ada'
    assert page.tutor_name == 'Ada Lovelace'
    assert page.timezone == 'UTC'
    assert len(page.dates) == 14
    assert page.dates[0] == date(2026, 1, 4)
    assert page.dates[-1] == date(2026, 1, 4) + timedelta(days=13)


def test_booking_page_uses_tutor_timezone_for_today(db, tutor) -> None:
    tutor.timezone = 'Pacific/Auckland'
    db.commit()

    page = get_booking_page(slug='ada', db=db)

    assert page.timezone == 'Pacific/Auckland'
    assert page.dates[0] == date(2026, 1, 5)


def test_booking_page_falls_back_to_default_name(db, tutor) -> None:
    tutor.name = None
    db.commit()

    assert get_booking_page(slug='ada', db=db).tutor_name == 'Tutor'


def test_booking_page_hides_unpublished_sites(db, unpublished_tutor) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_booking_page(slug='draft', db=db)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Tutor not found.'


def test_list_booking_slots_returns_start_and_end(db, monday_morning) -> None:
    slots = list_booking_slots(slug='ada', target_date=MONDAY, db=db)

    assert [(slot.start_ts.hour, slot.start_ts.minute) for slot in slots] == [(9, 0), (10, 0)]
    assert slots[0].end_ts - slots[0].start_ts == timedelta(minutes=45)


def test_list_booking_slots_rejects_dates_outside_window(db, monday_morning) -> None:
    with pytest.raises(HTTPException) as exception_info:
        list_booking_slots(slug='ada', target_date=date(2026, 2, 2), db=db)

    assert exception_info.value.status_code == 400

    with pytest.raises(HTTPException):
        list_booking_slots(slug='ada', target_date=date(2026, 1, 3), db=db)


def test_list_booking_slots_unknown_tutor(db) -> None:
    with pytest.raises(HTTPException) as exception_info:
        list_booking_slots(slug='nobody', target_date=MONDAY, db=db)

    assert exception_info.value.status_code == 404


def test_book_session_confirms_and_removes_slot(db, monday_morning) -> None:
    response = book_session(slug='ada', data=booking_request(), db=db)

    assert response.status == 'confirmed'
    assert response.start_ts == datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)
    assert response.prospect_email == 'sam@example.com'
    assert db.query(Lead).count() == 1

    slots = list_booking_slots(slug='ada', target_date=MONDAY, db=db)
    assert [(slot.start_ts.hour, slot.start_ts.minute) for slot in slots] == [(10, 0)]


def test_book_session_conflict_asks_client_to_reload(db, monday_morning) -> None:
    book_session(slug='ada', data=booking_request(), db=db)

    with pytest.raises(HTTPException) as exception_info:
        book_session(slug='ada', data=booking_request(prospect_email='alex@example.com'), db=db)

    assert exception_info.value.status_code == 409
    assert 'Reload the available slots' in exception_info.value.detail


def test_book_session_unknown_tutor(db) -> None:
    with pytest.raises(HTTPException) as exception_info:
        book_session(slug='nobody', data=booking_request(), db=db)

    assert exception_info.value.status_code == 404


def test_book_session_invalid_prospect(db, tutor) -> None:
    with pytest.raises(HTTPException) as exception_info:
        book_session(slug='ada', data=booking_request(prospect_email='nope'), db=db)

    assert exception_info.value.status_code == 422
    assert exception_info.value.detail['message'] == 'Invalid prospect details.'


def test_book_session_survives_lead_failure(db, monday_morning, monkeypatch: pytest.MonkeyPatch, caplog) -> None:
    def failing_lead(*_args, **_kwargs):
        raise ValueError('crm down')

    monkeypatch.setattr(booking_service, 'create_booking_lead', failing_lead)

    with caplog.at_level(logging.ERROR, logger='tutordesk.services.booking_service'):
        response = book_session(slug='ada', data=booking_request(), db=db)

    assert response.status == 'confirmed'
    assert response.start_ts == datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)
    assert db.query(Booking).count() == 1
    assert db.query(Lead).count() == 0
    assert 'Failed to create lead for booking' in caplog.text
