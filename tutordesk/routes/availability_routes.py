from datetime import datetime, time, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from tutordesk.auth.dependencies import get_current_user
from tutordesk.database import get_db
from tutordesk.models.availability import AvailabilityRule
from tutordesk.models.user import User
from tutordesk.routes.http_errors import booking_error_to_http, database_unavailable, ensure_database_ready
from tutordesk.schemas import BookingResponse
from tutordesk.services.booking_service import cancel_booking, get_availability_rules, list_tutor_bookings
from tutordesk.services.errors import BookingError
from tutordesk.services.slot_resolver import to_minutes

router = APIRouter(tags=['availability'])

MIN_SESSION_LENGTH_MINUTES = 15
MAX_SESSION_LENGTH_MINUTES = 180
MAX_BUFFER_TIME_MINUTES = 60


def parse_wall_clock(value: str) -> time:
    normalized = value.strip()
    if len(normalized) != 5 or normalized[2] != ':' or not (normalized[:2] + normalized[3:]).isdigit():
        raise ValueError('Times must use the HH:MM format.')

    minutes = to_minutes(normalized)
    return time(minutes // 60, minutes % 60)


class CreateAvailabilityRuleRequest(BaseModel):
    day_of_week: int = Field(ge=0, le=6)
    start_time: time
    end_time: time
    session_length: int = Field(ge=MIN_SESSION_LENGTH_MINUTES, le=MAX_SESSION_LENGTH_MINUTES)
    buffer_time: int = Field(default=0, ge=0, le=MAX_BUFFER_TIME_MINUTES)

    @field_validator('start_time', 'end_time', mode='before')
    @classmethod
    def validate_wall_clock(cls, value):
        if isinstance(value, str):
            return parse_wall_clock(value)
        return value

    @model_validator(mode='after')
    def validate_window(self) -> 'CreateAvailabilityRuleRequest':
        if self.start_time >= self.end_time:
            raise ValueError('End time must be after start time.')
        return self


class AvailabilityRuleResponse(BaseModel):
    id: int
    day_of_week: int
    start_time: time
    end_time: time
    session_length: int
    buffer_time: int

    class Config:
        from_attributes = True


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@router.get('/rules', response_model=list[AvailabilityRuleResponse])
def list_rules(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return get_availability_rules(db, current_user.id)
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.post('/rules', response_model=AvailabilityRuleResponse, status_code=status.HTTP_201_CREATED)
def add_rule(
    data: CreateAvailabilityRuleRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    rule = AvailabilityRule(
        tutor_id=current_user.id,
        day_of_week=data.day_of_week,
        start_time=data.start_time,
        end_time=data.end_time,
        session_length=data.session_length,
        buffer_time=data.buffer_time,
    )

    try:
        db.add(rule)
        db.commit()
        db.refresh(rule)
        return rule
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail='You already have availability set for this time slot.',
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.delete('/rules/{rule_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_rule(
    rule_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        rule = db.query(AvailabilityRule).filter(
            AvailabilityRule.id == rule_id,
            AvailabilityRule.tutor_id == current_user.id,
        ).first()

        if not rule:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Availability rule not found.',
            )

        db.delete(rule)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.get('/bookings', response_model=list[BookingResponse])
def list_bookings(
    include_cancelled: bool = Query(default=False),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return list_tutor_bookings(db, current_user.id, utcnow(), include_cancelled=include_cancelled)
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.post('/bookings/{booking_id}/cancel', response_model=BookingResponse)
def cancel_tutor_booking(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        booking = cancel_booking(db, current_user.id, booking_id)
    except BookingError as exc:
        raise booking_error_to_http(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    return BookingResponse.model_validate(booking)
