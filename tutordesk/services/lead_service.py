from sqlalchemy.orm import Session

from tutordesk.models.lead import Lead

BOOKING_LEAD_SOURCE = 'booking'
BOOKING_LEAD_STAGE = 'booked'


def create_booking_lead(db: Session, tutor_id: int, prospect) -> Lead:
    """Add the prospect behind a new booking to the tutor's pipeline."""
    lead = Lead(
        tutor_id=tutor_id,
        name=prospect.name,
        email=prospect.email,
        source=BOOKING_LEAD_SOURCE,
        stage=BOOKING_LEAD_STAGE,
        notes=prospect.reason,
    )
    db.add(lead)
    db.commit()
    db.refresh(lead)
    return lead
