"""Create a demo provider with a few services.

Usage:
    python -m queuebook.seed_demo
"""
import sys

from sqlalchemy.exc import SQLAlchemyError

from queuebook.core.errors import SchedulingError
from queuebook.database import Base, SessionLocal, engine
from queuebook.models import appointment, provider, service  # noqa: F401
from queuebook.repositories.appointment_repository import AppointmentRepository
from queuebook.services.booking_service import BookingService

WEEKDAY_HOURS = {'open': '08:00', 'close': '17:00', 'is_open': True, 'breaks': [{'start': '12:00', 'end': '13:00'}]}

DEMO_WORKING_HOURS = {
    'Monday': WEEKDAY_HOURS,
    'Tuesday': WEEKDAY_HOURS,
    'Wednesday': WEEKDAY_HOURS,
    'Thursday': WEEKDAY_HOURS,
    'Friday': WEEKDAY_HOURS,
    'Saturday': {'open': '09:00', 'close': '13:00', 'is_open': True},
    'Sunday': {'is_open': False},
}

DEMO_SERVICES = [
    {'name': 'General Consultation', 'duration_minutes': 30, 'default_priority': 'medium',
     'max_advance_booking_days': 30, 'allow_walk_in': True},
    {'name': 'Specialist Consultation', 'duration_minutes': 45, 'default_priority': 'high',
     'max_advance_booking_days': 60, 'allow_walk_in': False},
    {'name': 'Lab Tests', 'duration_minutes': 15, 'default_priority': 'low',
     'max_advance_booking_days': 14, 'allow_walk_in': True},
]


def seed(booking: BookingService) -> list[str]:
    demo_provider = booking.create_provider(
        name='City Medical Center',
        provider_type='hospital',
        working_hours=DEMO_WORKING_HOURS,
        holidays=['2026-12-25', '2027-01-01'],
    )
    lines = [f'provider {demo_provider.id} {demo_provider.name}']
    for definition in DEMO_SERVICES:
        demo_service = booking.create_service(provider_id=demo_provider.id, **definition)
        lines.append(f'service  {demo_service.id} {demo_service.name} ({demo_service.duration_minutes} min)')
    return lines


def main() -> None:
    db = SessionLocal()
    try:
        Base.metadata.create_all(bind=engine)
        for line in seed(BookingService(AppointmentRepository(db))):
            print(line)
    except (SchedulingError, SQLAlchemyError) as exc:
        print(f'Seeding failed: {exc}', file=sys.stderr)
        sys.exit(1)
    finally:
        db.close()


if __name__ == '__main__':
    main()
