import logging
from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from queuebook.core.errors import SchedulingError, scheduling_error_to_http
from queuebook.database import SessionLocal, ensure_appointment_schema
from queuebook.repositories.appointment_repository import AppointmentRepository
from queuebook.services.booking_service import BookingService

logger = logging.getLogger(__name__)

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and Postgres credentials.'


def ensure_database_ready() -> None:
    try:
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    return BookingService(AppointmentRepository(db))


@contextmanager
def booking_errors(booking: BookingService) -> Iterator[None]:
    """Translate core and database failures into HTTP errors."""
    try:
        yield
    except SchedulingError as exc:
        raise scheduling_error_to_http(exc) from exc
    except SQLAlchemyError as exc:
        booking.repository.rollback()
        logger.exception('Database operation failed')
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc
