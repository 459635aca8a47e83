"""Bookable slot resolution for the public booking page.

Turns a tutor's weekly availability rules into concrete session start instants
for one calendar date, minus anything in the past and anything overlapping a
confirmed booking. Everything here is pure: callers fetch rules and bookings
first and pass them in.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Iterable, Iterator, NamedTuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from tutordesk.core import config
from tutordesk.models.booking import BOOKING_STATUS_CANCELLED

logger = logging.getLogger(__name__)

MINUTES_PER_HOUR = 60


class SlotProposal(NamedTuple):
    start_ts: datetime
    end_ts: datetime


def sunday_first_weekday(day: date) -> int:
    return (day.weekday() + 1) % 7


def to_minutes(value: time | str) -> int:
    """Minutes since midnight for a ``time`` or an ``HH:MM[:SS]`` string."""
    if isinstance(value, time):
        return value.hour * MINUTES_PER_HOUR + value.minute

    parts = value.strip().split(':')
    if len(parts) < 2:
        raise ValueError(f'Invalid wall-clock time: {value!r}')
    hours, minutes = int(parts[0]), int(parts[1])
    if not (0 <= hours < 24 and 0 <= minutes < MINUTES_PER_HOUR):
        raise ValueError(f'Invalid wall-clock time: {value!r}')
    return hours * MINUTES_PER_HOUR + minutes


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive values; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def resolve_timezone(name: str | None) -> tzinfo:
    for candidate in (name, config.DEFAULT_TIMEZONE):
        if not candidate:
            continue
        try:
            return ZoneInfo(candidate)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning('Unknown timezone %r, falling back', candidate)
    return timezone.utc


def overlaps(start: datetime, end: datetime, other_start: datetime, other_end: datetime) -> bool:
    return start < other_end and end > other_start


def iterate_rule_starts(rule) -> Iterator[int]:
    """Yield session start offsets (minutes since midnight) for one rule.

    Only the start is bounded by ``end_time``; the last session may run past it.
    """
    start_minutes = to_minutes(rule.start_time)
    end_minutes = to_minutes(rule.end_time)
    step = rule.session_length + rule.buffer_time

    if rule.session_length <= 0 or step <= 0:
        raise ValueError('session_length must be positive.')

    cursor = start_minutes
    while cursor < end_minutes:
        yield cursor
        cursor += step


def wall_clock_instant(target_date: date, minutes: int, tz: tzinfo) -> datetime:
    local_start = datetime.combine(
        target_date,
        time(minutes // MINUTES_PER_HOUR, minutes % MINUTES_PER_HOUR),
        tzinfo=tz,
    )
    return local_start.astimezone(timezone.utc)


def list_slot_proposals(
    rules: Iterable,
    confirmed_bookings: Iterable,
    target_date: date,
    now: datetime,
    tz: tzinfo = timezone.utc,
) -> list[SlotProposal]:
    now = as_utc(now)
    day_of_week = sunday_first_weekday(target_date)
    busy = [
        (as_utc(booking.start_ts), as_utc(booking.end_ts))
        for booking in confirmed_bookings
        if getattr(booking, 'status', None) != BOOKING_STATUS_CANCELLED
    ]

    proposals: list[SlotProposal] = []
    for rule in rules:
        if rule.day_of_week != day_of_week:
            continue

        for offset in iterate_rule_starts(rule):
            slot_start = wall_clock_instant(target_date, offset, tz)
            slot_end = slot_start + timedelta(minutes=rule.session_length)

            if slot_start <= now:
                continue

            if any(overlaps(slot_start, slot_end, busy_start, busy_end) for busy_start, busy_end in busy):
                continue

            proposals.append(SlotProposal(slot_start, slot_end))

    return proposals


def list_available_slots(
    rules: Iterable,
    confirmed_bookings: Iterable,
    target_date: date,
    now: datetime,
    tz: tzinfo = timezone.utc,
) -> list[datetime]:
    return [
        proposal.start_ts
        for proposal in list_slot_proposals(rules, confirmed_bookings, target_date, now, tz)
    ]
