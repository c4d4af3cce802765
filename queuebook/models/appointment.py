"""Appointment model definitions."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, String, text

from queuebook.database import Base


class AppointmentStatus(str, enum.Enum):
    SCHEDULED = 'scheduled'
    CONFIRMED = 'confirmed'
    IN_PROGRESS = 'in-progress'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'
    NO_SHOW = 'no-show'


class Priority(str, enum.Enum):
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'
    URGENT = 'urgent'


class BookingChannel(str, enum.Enum):
    WEB = 'web'
    PHONE = 'phone'
    WALK_IN = 'walk-in'
    SMS = 'sms'
    VOICE = 'voice'


class Appointment(Base):
    """Represents a booked appointment. Cancelled rows are kept."""
    __tablename__ = "appointments"
    __table_args__ = (
        # one active booking per provider slot; cancelled rows free the slot
        Index(
            'uq_appointments_active_slot',
            'provider_id',
            'appointment_date',
            'start_time',
            unique=True,
            sqlite_where=text("status != 'cancelled'"),
            postgresql_where=text("status != 'cancelled'"),
        ),
        Index('idx_appointments_partition', 'provider_id', 'service_id', 'appointment_date'),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    provider_id = Column(String(36), ForeignKey("providers.id"), nullable=False)
    service_id = Column(String(36), ForeignKey("services.id"), nullable=False)
    user_id = Column(String, nullable=True)
    guest_name = Column(String, nullable=True)
    guest_phone = Column(String, nullable=True)
    guest_email = Column(String, nullable=True)
    appointment_date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)  # HH:MM
    duration_minutes = Column(Integer, nullable=False)
    status = Column(String, nullable=False, default=AppointmentStatus.SCHEDULED.value)
    booking_channel = Column(String, nullable=False, default=BookingChannel.WEB.value)
    priority = Column(String, nullable=False, default=Priority.MEDIUM.value)
    queue_position = Column(Integer, nullable=True)
    estimated_wait_minutes = Column(Integer, nullable=True)
    check_in_time = Column(DateTime, nullable=True)
    completed_time = Column(DateTime, nullable=True)
    notes = Column(String, nullable=True)
    cancellation_reason = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now)

    @property
    def confirmation_code(self) -> str:
        return f"SE{(self.id or '')[-6:].upper()}"
