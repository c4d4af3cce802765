import os
from datetime import date, datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite:///:memory:')

from queuebook.database import Base  # noqa: E402
from queuebook.models.appointment import Appointment  # noqa: E402
from queuebook.models.provider import Provider  # noqa: E402
from queuebook.models.service import Service  # noqa: E402
from queuebook.repositories.appointment_repository import AppointmentRepository  # noqa: E402
from queuebook.services.booking_service import BookingService  # noqa: E402

# Monday
BOOKING_DAY = date(2026, 1, 5)
NOW = datetime(2026, 1, 5, 8, 0)

MORNING_HOURS = {
    'Monday': {'open': '09:00', 'close': '10:00', 'is_open': True},
    'Tuesday': {'open': '09:00', 'close': '10:00', 'is_open': True},
    'Sunday': {'is_open': False},
}


@pytest.fixture
def db_session():
    engine = create_engine(
        'sqlite:///:memory:',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    tables = [Provider.__table__, Service.__table__, Appointment.__table__]
    Base.metadata.create_all(bind=engine, tables=tables)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine, tables=list(reversed(tables)))


@pytest.fixture
def booking(db_session) -> BookingService:
    return BookingService(
        AppointmentRepository(db_session),
        slot_granularity_minutes=30,
        exclusion_mode='interval',
        queue_buffer_minutes=0,
        clock=lambda: NOW,
    )


@pytest.fixture
def clinic(booking):
    provider = booking.create_provider(name='Morning Clinic', working_hours=MORNING_HOURS, provider_type='clinic')
    return provider


@pytest.fixture
def consultation(booking, clinic):
    return booking.create_service(provider_id=clinic.id, name='Consultation', duration_minutes=30)
