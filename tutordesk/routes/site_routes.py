import re

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from tutordesk.auth.dependencies import get_current_user
from tutordesk.database import get_db
from tutordesk.models.user import TutorSite, User
from tutordesk.routes.http_errors import database_unavailable, ensure_database_ready
from tutordesk.services.booking_service import normalize_slug

router = APIRouter(tags=['site'])

SLUG_PATTERN = re.compile(r'^[a-z0-9](?:[a-z0-9-]{1,38}[a-z0-9])$')
MAX_HEADLINE_LENGTH = 200
MAX_BIO_LENGTH = 2000


def _optional_text(value: str | None, max_length: int, label: str) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    if len(normalized) > max_length:
        raise ValueError(f'{label} must be {max_length} characters or fewer.')

    return normalized


class UpdateSiteRequest(BaseModel):
    slug: str | None = None
    headline: str | None = None
    bio: str | None = None
    published: bool | None = None

    @field_validator('slug')
    @classmethod
    def validate_slug(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = normalize_slug(value)
        if not SLUG_PATTERN.match(normalized):
            raise ValueError('Slugs are 3-40 lowercase letters, digits or hyphens.')

        return normalized

    @field_validator('headline')
    @classmethod
    def validate_headline(cls, value: str | None) -> str | None:
        return _optional_text(value, MAX_HEADLINE_LENGTH, 'Headline')

    @field_validator('bio')
    @classmethod
    def validate_bio(cls, value: str | None) -> str | None:
        return _optional_text(value, MAX_BIO_LENGTH, 'Bio')


class SiteResponse(BaseModel):
    slug: str
    headline: str | None = None
    bio: str | None = None
    published: bool

    class Config:
        from_attributes = True


def get_own_site(db: Session, tutor_id: int) -> TutorSite | None:
    return db.query(TutorSite).filter(TutorSite.tutor_id == tutor_id).first()


@router.get('', response_model=SiteResponse)
def get_site(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        site = get_own_site(db, current_user.id)
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    if not site:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='You have not set up your site yet.',
        )

    return site


@router.put('', response_model=SiteResponse)
def update_site(
    data: UpdateSiteRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        site = get_own_site(db, current_user.id)

        if site is None:
            if data.slug is None:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail='Choose a slug for your site.',
                )
            site = TutorSite(tutor_id=current_user.id, published=False)
            db.add(site)

        for field, value in data.model_dump(exclude_unset=True).items():
            if field in {'slug', 'published'} and value is None:
                continue
            setattr(site, field, value)

        db.commit()
        db.refresh(site)
        return site
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail='That slug is already taken.',
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc
