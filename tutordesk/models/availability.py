"""Availability rule model definitions."""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Time, UniqueConstraint, func
from tutordesk.database import Base


class AvailabilityRule(Base):
    """Represents a recurring weekly availability window for a tutor.

    ``day_of_week`` is Sunday-first (0 = Sunday). Times are wall-clock in the
    tutor's timezone.
    """
    __tablename__ = "availability_rules"
    __table_args__ = (
        UniqueConstraint("tutor_id", "day_of_week", "start_time", "end_time", name="uq_availability_rules_window"),
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_availability_rules_day"),
        CheckConstraint("start_time < end_time", name="ck_availability_rules_order"),
        CheckConstraint("session_length BETWEEN 15 AND 180", name="ck_availability_rules_session"),
        CheckConstraint("buffer_time BETWEEN 0 AND 60", name="ck_availability_rules_buffer"),
    )

    id = Column(Integer, primary_key=True)
    tutor_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    session_length = Column(Integer, nullable=False, default=60)
    buffer_time = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
