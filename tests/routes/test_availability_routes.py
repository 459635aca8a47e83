from datetime import datetime, time, timezone

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from tutordesk.models.availability import AvailabilityRule
from tutordesk.routes import availability_routes
from tutordesk.routes.availability_routes import (
    CreateAvailabilityRuleRequest,
    add_rule,
    cancel_tutor_booking,
    delete_rule,
    list_bookings,
    list_rules,
)
from tutordesk.services.booking_service import create_booking

PROSPECT = {'name': 'Sam Student', 'email': 'sam@example.com'}


def rule_request(**overrides) -> CreateAvailabilityRuleRequest:
    payload = {
        'day_of_week': 1,
        'start_time': '09:00',
        'end_time': '17:00',
        'session_length': 60,
        'buffer_time': 15,
    }
    payload.update(overrides)
    return CreateAvailabilityRuleRequest(**payload)


def test_rule_request_parses_wall_clock_times() -> None:
    request = rule_request(start_time=' 08:30 ', end_time='12:05')

    assert request.start_time == time(8, 30)
    assert request.end_time == time(12, 5)


@pytest.mark.parametrize(
    'overrides',
    [
        {'start_time': '9:00'},
        {'start_time': '25:00'},
        {'start_time': '17:00', 'end_time': '09:00'},
        {'start_time': '09:00', 'end_time': '09:00'},
        {'day_of_week': 7},
        {'day_of_week': -1},
        {'session_length': 10},
        {'session_length': 181},
        {'buffer_time': 61},
        {'buffer_time': -5},
    ],
)
def test_rule_request_rejects_invalid_rules(overrides: dict) -> None:
    with pytest.raises(ValidationError):
        rule_request(**overrides)


def test_add_and_list_rules(db, tutor) -> None:
    created = add_rule(data=rule_request(), current_user=tutor, db=db)
    add_rule(data=rule_request(day_of_week=0, start_time='10:00', end_time='12:00'), current_user=tutor, db=db)

    rules = list_rules(current_user=tutor, db=db)

    assert created.id is not None
    assert [(rule.day_of_week, rule.start_time) for rule in rules] == [(0, time(10, 0)), (1, time(9, 0))]


def test_overlapping_rules_are_allowed(db, tutor) -> None:
    add_rule(data=rule_request(), current_user=tutor, db=db)
    add_rule(data=rule_request(start_time='12:00', end_time='18:00'), current_user=tutor, db=db)

    assert len(list_rules(current_user=tutor, db=db)) == 2


def test_duplicate_rule_is_a_conflict(db, tutor) -> None:
    add_rule(data=rule_request(), current_user=tutor, db=db)

    with pytest.raises(HTTPException) as exception_info:
        add_rule(data=rule_request(session_length=30), current_user=tutor, db=db)

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail == 'You already have availability set for this time slot.'


def test_rules_are_scoped_to_the_tutor(db, tutor, other_tutor) -> None:
    add_rule(data=rule_request(), current_user=tutor, db=db)

    assert list_rules(current_user=other_tutor, db=db) == []


def test_delete_rule(db, tutor) -> None:
    created = add_rule(data=rule_request(), current_user=tutor, db=db)

    delete_rule(rule_id=created.id, current_user=tutor, db=db)

    assert db.query(AvailabilityRule).count() == 0


def test_delete_rule_of_another_tutor_is_not_found(db, tutor, other_tutor) -> None:
    created = add_rule(data=rule_request(), current_user=tutor, db=db)

    with pytest.raises(HTTPException) as exception_info:
        delete_rule(rule_id=created.id, current_user=other_tutor, db=db)

    assert exception_info.value.status_code == 404
    assert db.query(AvailabilityRule).count() == 1


def test_list_and_cancel_bookings(db, tutor, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(availability_routes, 'utcnow', lambda: datetime(2026, 1, 4, tzinfo=timezone.utc))
    booking = create_booking(
        db,
        'ada',
        {
            'start_ts': datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc),
            'end_ts': datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc),
        },
        PROSPECT,
    )

    assert [item.id for item in list_bookings(include_cancelled=False, current_user=tutor, db=db)] == [booking.id]

    response = cancel_tutor_booking(booking_id=booking.id, current_user=tutor, db=db)

    assert response.status == 'cancelled'
    assert list_bookings(include_cancelled=False, current_user=tutor, db=db) == []
    assert len(list_bookings(include_cancelled=True, current_user=tutor, db=db)) == 1

    with pytest.raises(HTTPException) as exception_info:
        cancel_tutor_booking(booking_id=booking.id, current_user=tutor, db=db)

    assert exception_info.value.status_code == 409


def test_cancel_unknown_booking(db, tutor) -> None:
    with pytest.raises(HTTPException) as exception_info:
        cancel_tutor_booking(booking_id=999, current_user=tutor, db=db)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Booking not found.'
