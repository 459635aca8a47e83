from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from tutordesk.database import ensure_booking_schema
from tutordesk.services.errors import (
    BookingError,
    InvalidTransition,
    NotFound,
    PersistenceError,
    SlotUnavailable,
    ValidationFailed,
)

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and Postgres credentials.'


def database_unavailable(exc: Exception) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )


def ensure_database_ready() -> None:
    try:
        ensure_booking_schema()
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc


def booking_error_to_http(exc: BookingError) -> HTTPException:
    if isinstance(exc, NotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message)
    if isinstance(exc, ValidationFailed):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={'message': exc.message, 'errors': exc.errors},
        )
    if isinstance(exc, (SlotUnavailable, InvalidTransition)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.message)
    if isinstance(exc, PersistenceError):
        return database_unavailable(exc)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
