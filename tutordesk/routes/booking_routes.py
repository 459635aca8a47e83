from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tutordesk.core import config
from tutordesk.database import get_db
from tutordesk.models.user import User
from tutordesk.routes.http_errors import booking_error_to_http, database_unavailable, ensure_database_ready
from tutordesk.schemas import BookingResponse, CreateBookingRequest, SlotProposalResponse
from tutordesk.services.booking_service import (
    browsable_dates,
    create_booking,
    get_published_site,
    resolve_slots_for_site,
)
from tutordesk.services.errors import BookingError
from tutordesk.services.slot_resolver import resolve_timezone

router = APIRouter(tags=['booking'])

DEFAULT_TUTOR_NAME = 'Tutor'


class BookingPageResponse(BaseModel):
    slug: str
    tutor_name: str
    timezone: str
    dates: list[date]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_site_or_404(db: Session, slug: str):
    site = get_published_site(db, slug)
    if site is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Tutor not found.',
        )
    return site


@router.get('/{slug}', response_model=BookingPageResponse)
def get_booking_page(slug: str, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        site = get_site_or_404(db, slug)
        tutor = db.get(User, site.tutor_id)
        tz = resolve_timezone(tutor.timezone if tutor else None)

        return BookingPageResponse(
            slug=site.slug,
            tutor_name=(tutor.name if tutor and tutor.name else DEFAULT_TUTOR_NAME),
            timezone=str(tz),
            dates=browsable_dates(utcnow(), tz),
        )
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.get('/{slug}/slots', response_model=list[SlotProposalResponse])
def list_booking_slots(
    slug: str,
    target_date: date = Query(..., alias='date'),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        site = get_site_or_404(db, slug)
        tutor = db.get(User, site.tutor_id)
        now = utcnow()

        if target_date not in browsable_dates(now, resolve_timezone(tutor.timezone if tutor else None)):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f'Sessions can only be booked within the next {config.BOOKING_LOOKAHEAD_DAYS} days.',
            )

        return [
            SlotProposalResponse(start_ts=proposal.start_ts, end_ts=proposal.end_ts)
            for proposal in resolve_slots_for_site(db, site, target_date, now)
        ]
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.post('/{slug}', response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def book_session(slug: str, data: CreateBookingRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        booking = create_booking(db, slug, data.slot(), data.prospect())
    except BookingError as exc:
        raise booking_error_to_http(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    return BookingResponse.model_validate(booking)
