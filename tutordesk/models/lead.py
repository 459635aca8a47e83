"""CRM lead model definitions."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, func
from tutordesk.database import Base

LEAD_STAGES = ("new", "contacted", "booked", "won", "lost")


class Lead(Base):
    """Represents a prospective client tracked in the tutor's pipeline."""
    __tablename__ = "leads"

    id = Column(Integer, primary_key=True)
    tutor_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    name = Column(String, nullable=False)
    email = Column(String)
    phone = Column(String)
    source = Column(String)
    stage = Column(String, nullable=False, default="new")
    notes = Column(String)
    next_follow_up_date = Column(Date)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
