"""Booking model definitions."""

from sqlalchemy import DDL, CheckConstraint, Column, DateTime, ForeignKey, Integer, String, event, func
from tutordesk.database import (
    Base,
    POSTGRES_BOOKING_OVERLAP_CONSTRAINT,
    POSTGRES_BTREE_GIST_EXTENSION,
    SQLITE_BOOKING_OVERLAP_TRIGGER,
)

BOOKING_STATUS_CONFIRMED = "confirmed"
BOOKING_STATUS_CANCELLED = "cancelled"


class Booking(Base):
    """Represents a reservation of one tutor session by a prospect."""
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("start_ts < end_ts", name="ck_bookings_interval"),
        CheckConstraint("status IN ('confirmed', 'cancelled')", name="ck_bookings_status"),
    )

    id = Column(Integer, primary_key=True)
    tutor_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    start_ts = Column(DateTime(timezone=True), nullable=False)
    end_ts = Column(DateTime(timezone=True), nullable=False)
    prospect_name = Column(String, nullable=False)
    prospect_email = Column(String, nullable=False)
    reason = Column(String)
    status = Column(String, nullable=False, default=BOOKING_STATUS_CONFIRMED)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


event.listen(
    Booking.__table__,
    "before_create",
    DDL(POSTGRES_BTREE_GIST_EXTENSION).execute_if(dialect="postgresql"),
)
event.listen(
    Booking.__table__,
    "after_create",
    DDL(POSTGRES_BOOKING_OVERLAP_CONSTRAINT).execute_if(dialect="postgresql"),
)
event.listen(
    Booking.__table__,
    "after_create",
    DDL(SQLITE_BOOKING_OVERLAP_TRIGGER).execute_if(dialect="sqlite"),
)
