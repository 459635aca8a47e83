"""Booking intake and the persistence reads the booking page depends on.

Conflict prevention lives in the database: inserts are rejected by the
``bookings_no_overlap`` constraint, never re-checked here against a slot
listing that may already be stale.
"""

import logging
from datetime import date, datetime, timedelta

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from tutordesk.core import config
from tutordesk.database import BOOKING_OVERLAP_CONSTRAINT
from tutordesk.models.availability import AvailabilityRule
from tutordesk.models.booking import BOOKING_STATUS_CANCELLED, BOOKING_STATUS_CONFIRMED, Booking
from tutordesk.models.user import TutorSite, User
from tutordesk.schemas import ProspectDetails, SlotSelection
from tutordesk.services.errors import (
    BookingNotFound,
    InvalidTransition,
    PersistenceError,
    SlotUnavailable,
    TutorNotFound,
    ValidationFailed,
)
from tutordesk.services.lead_service import create_booking_lead
from tutordesk.services.slot_resolver import SlotProposal, as_utc, list_slot_proposals, resolve_timezone

logger = logging.getLogger(__name__)


def _validate(model: type[BaseModel], value, label: str):
    if isinstance(value, model):
        return value

    try:
        return model.model_validate(value)
    except ValidationError as exc:
        errors = [{'loc': list(error['loc']), 'msg': error['msg']} for error in exc.errors()]
        raise ValidationFailed(f'Invalid {label}.', errors=errors) from exc


def normalize_slug(slug: str) -> str:
    return slug.strip().lower()


def get_published_site(db: Session, slug: str) -> TutorSite | None:
    return db.query(TutorSite).filter(
        TutorSite.slug == normalize_slug(slug),
        TutorSite.published.is_(True),
    ).first()


def get_availability_rules(db: Session, tutor_id: int) -> list[AvailabilityRule]:
    return db.query(AvailabilityRule).filter(
        AvailabilityRule.tutor_id == tutor_id,
    ).order_by(
        AvailabilityRule.day_of_week.asc(),
        AvailabilityRule.start_time.asc(),
        AvailabilityRule.id.asc(),
    ).all()


def get_confirmed_bookings(
    db: Session,
    tutor_id: int,
    now: datetime,
    lookahead_days: int | None = None,
) -> list[Booking]:
    now = as_utc(now)
    if lookahead_days is None:
        lookahead_days = config.BOOKING_LOOKAHEAD_DAYS
    # One extra day so sessions on the last browsable date still see bookings
    # that start just after the window edge.
    range_end = now + timedelta(days=lookahead_days + 1)

    return db.query(Booking).filter(
        Booking.tutor_id == tutor_id,
        Booking.status == BOOKING_STATUS_CONFIRMED,
        Booking.end_ts > now,
        Booking.start_ts < range_end,
    ).order_by(Booking.start_ts.asc()).all()


def browsable_dates(now: datetime, tz, lookahead_days: int | None = None) -> list[date]:
    if lookahead_days is None:
        lookahead_days = config.BOOKING_LOOKAHEAD_DAYS
    today = as_utc(now).astimezone(tz).date()
    return [today + timedelta(days=offset) for offset in range(lookahead_days)]


def resolve_slots_for_site(db: Session, site: TutorSite, target_date: date, now: datetime) -> list[SlotProposal]:
    tutor = db.get(User, site.tutor_id)
    tz = resolve_timezone(tutor.timezone if tutor else None)
    rules = get_availability_rules(db, site.tutor_id)
    bookings = get_confirmed_bookings(db, site.tutor_id, now)

    return list_slot_proposals(rules, bookings, target_date, now, tz)


def create_booking(db: Session, tutor_slug: str, slot, prospect) -> Booking:
    slot = _validate(SlotSelection, slot, 'slot')
    prospect = _validate(ProspectDetails, prospect, 'prospect details')

    try:
        site = get_published_site(db, tutor_slug)
    except SQLAlchemyError as exc:
        raise PersistenceError('Database unavailable.') from exc

    if site is None:
        raise TutorNotFound(tutor_slug)

    booking = Booking(
        tutor_id=site.tutor_id,
        start_ts=as_utc(slot.start_ts),
        end_ts=as_utc(slot.end_ts),
        prospect_name=prospect.name,
        prospect_email=prospect.email,
        reason=prospect.reason,
        status=BOOKING_STATUS_CONFIRMED,
    )

    try:
        db.add(booking)
        db.commit()
        db.refresh(booking)
    except IntegrityError as exc:
        db.rollback()
        if BOOKING_OVERLAP_CONSTRAINT in str(exc.orig):
            raise SlotUnavailable() from exc
        raise PersistenceError('Booking could not be saved.') from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise PersistenceError('Booking could not be saved.') from exc

    logger.info('Booking %s confirmed for tutor %s at %s', booking.id, booking.tutor_id, booking.start_ts)

    # The booking is committed and fully loaded; detach it so a failed lead
    # write cannot expire it or force a reload.
    db.expunge(booking)
    record_booking_lead(db, booking, prospect)

    return booking


def record_booking_lead(db: Session, booking: Booking, prospect: ProspectDetails) -> None:
    booking_id = booking.id
    tutor_id = booking.tutor_id

    try:
        create_booking_lead(db, tutor_id, prospect)
    except Exception:
        logger.exception('Failed to create lead for booking %s', booking_id)
        try:
            db.rollback()
        except SQLAlchemyError:
            logger.exception('Rollback after failed lead for booking %s also failed', booking_id)


def list_tutor_bookings(
    db: Session,
    tutor_id: int,
    now: datetime,
    include_cancelled: bool = False,
) -> list[Booking]:
    query = db.query(Booking).filter(
        Booking.tutor_id == tutor_id,
        Booking.end_ts > as_utc(now),
    )
    if not include_cancelled:
        query = query.filter(Booking.status == BOOKING_STATUS_CONFIRMED)

    return query.order_by(Booking.start_ts.asc()).all()


def cancel_booking(db: Session, tutor_id: int, booking_id: int) -> Booking:
    booking = db.query(Booking).filter(
        Booking.id == booking_id,
        Booking.tutor_id == tutor_id,
    ).first()

    if booking is None:
        raise BookingNotFound(booking_id)

    if booking.status != BOOKING_STATUS_CONFIRMED:
        raise InvalidTransition(booking.status, BOOKING_STATUS_CANCELLED)

    booking.status = BOOKING_STATUS_CANCELLED
    try:
        db.commit()
        db.refresh(booking)
    except SQLAlchemyError as exc:
        db.rollback()
        raise PersistenceError('Booking could not be cancelled.') from exc

    logger.info('Booking %s cancelled by tutor %s', booking_id, tutor_id)
    return booking
