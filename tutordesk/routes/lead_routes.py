from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, EmailStr, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tutordesk.auth.dependencies import get_current_user
from tutordesk.database import get_db
from tutordesk.models.lead import LEAD_STAGES, Lead
from tutordesk.models.user import User
from tutordesk.routes.http_errors import database_unavailable

router = APIRouter(tags=['leads'])


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _validate_stage(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized not in LEAD_STAGES:
        raise ValueError('Invalid lead stage.')
    return normalized


class CreateLeadRequest(BaseModel):
    name: str
    email: EmailStr | None = None
    phone: str | None = None
    source: str | None = None
    stage: str = 'new'
    notes: str | None = None
    next_follow_up_date: date | None = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Enter a name.')
        return normalized

    @field_validator('email', 'phone', 'source', 'notes', 'next_follow_up_date', mode='before')
    @classmethod
    def normalize_optional(cls, value):
        return _blank_to_none(value)

    @field_validator('stage')
    @classmethod
    def validate_stage(cls, value: str) -> str:
        return _validate_stage(value)


class UpdateLeadRequest(BaseModel):
    name: str | None = None
    email: EmailStr | None = None
    phone: str | None = None
    source: str | None = None
    stage: str | None = None
    notes: str | None = None
    next_follow_up_date: date | None = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        if not normalized:
            raise ValueError('Enter a name.')
        return normalized

    @field_validator('email', 'phone', 'source', 'notes', 'next_follow_up_date', mode='before')
    @classmethod
    def normalize_optional(cls, value):
        return _blank_to_none(value)

    @field_validator('stage')
    @classmethod
    def validate_stage(cls, value: str | None) -> str | None:
        return _validate_stage(value)


class LeadResponse(BaseModel):
    id: int
    name: str
    email: str | None = None
    phone: str | None = None
    source: str | None = None
    stage: str
    notes: str | None = None
    next_follow_up_date: date | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


def get_owned_lead(db: Session, lead_id: int, tutor_id: int) -> Lead:
    lead = db.query(Lead).filter(
        Lead.id == lead_id,
        Lead.tutor_id == tutor_id,
    ).first()

    if not lead:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Lead not found.',
        )

    return lead


@router.get('', response_model=list[LeadResponse])
def list_leads(
    stage: str | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        normalized_stage = _validate_stage(stage)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    try:
        query = db.query(Lead).filter(Lead.tutor_id == current_user.id)
        if normalized_stage:
            query = query.filter(Lead.stage == normalized_stage)

        return query.order_by(Lead.created_at.desc(), Lead.id.desc()).all()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


@router.post('', response_model=LeadResponse, status_code=status.HTTP_201_CREATED)
def add_lead(
    data: CreateLeadRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    lead = Lead(tutor_id=current_user.id, **data.model_dump())

    try:
        db.add(lead)
        db.commit()
        db.refresh(lead)
        return lead
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.patch('/{lead_id}', response_model=LeadResponse)
def update_lead(
    lead_id: int,
    data: UpdateLeadRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        lead = get_owned_lead(db, lead_id, current_user.id)

        for field, value in data.model_dump(exclude_unset=True).items():
            if field in {'name', 'stage'} and value is None:
                continue
            setattr(lead, field, value)

        db.commit()
        db.refresh(lead)
        return lead
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.delete('/{lead_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_lead(
    lead_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        lead = get_owned_lead(db, lead_id, current_user.id)
        db.delete(lead)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc
