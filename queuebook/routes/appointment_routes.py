import re
from datetime import date, datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator, model_validator

from queuebook.core.dependencies import booking_errors, ensure_database_ready, get_booking_service
from queuebook.models.appointment import Appointment, BookingChannel, Priority
from queuebook.scheduling.lifecycle import Action
from queuebook.scheduling.queue import queue_status_for
from queuebook.services.booking_service import BookingService

router = APIRouter(tags=['appointments'])

MAX_APPOINTMENT_NOTES_LENGTH = 600
MAX_CANCELLATION_REASON_LENGTH = 300
TIME_PATTERN = re.compile(r'^([01]\d|2[0-3]):[0-5]\d$')


def _normalize_optional_text(value: str | None, max_length: int, label: str) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    if len(normalized) > max_length:
        raise ValueError(f'{label} must be {max_length} characters or fewer.')

    return normalized


class GuestContact(BaseModel):
    name: str
    phone: str
    email: str | None = None

    @field_validator('name', 'phone')
    @classmethod
    def validate_required(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Guest name and phone are required.')
        return normalized

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip().lower()
        if not normalized:
            return None
        if '@' not in normalized:
            raise ValueError('Invalid guest email.')
        return normalized


class CreateAppointmentRequest(BaseModel):
    service_id: str
    date: date
    time: str
    priority: Priority | None = None
    booking_channel: BookingChannel = BookingChannel.WEB
    user_id: str | None = None
    guest: GuestContact | None = None
    notes: str | None = None

    @field_validator('time')
    @classmethod
    def validate_time(cls, value: str) -> str:
        normalized = value.strip()
        if not TIME_PATTERN.match(normalized):
            raise ValueError('Time must be in HH:MM format.')
        return normalized

    @field_validator('user_id')
    @classmethod
    def validate_user_id(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _normalize_optional_text(value, MAX_APPOINTMENT_NOTES_LENGTH, 'Notes')

    @model_validator(mode='after')
    def require_contact(self) -> 'CreateAppointmentRequest':
        if self.user_id is None and self.guest is None:
            raise ValueError('Either a user id or guest contact details are required.')
        return self


class UpdateAppointmentRequest(BaseModel):
    notes: str | None = None

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _normalize_optional_text(value, MAX_APPOINTMENT_NOTES_LENGTH, 'Notes')


class TransitionRequest(BaseModel):
    action: Action
    reason: str | None = None

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        return _normalize_optional_text(value, MAX_CANCELLATION_REASON_LENGTH, 'Reason')


class CancelAppointmentRequest(BaseModel):
    reason: str | None = None

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        return _normalize_optional_text(value, MAX_CANCELLATION_REASON_LENGTH, 'Reason')


class AppointmentResponse(BaseModel):
    id: str
    confirmation_code: str
    provider_id: str
    service_id: str
    user_id: str | None = None
    guest_name: str | None = None
    guest_phone: str | None = None
    guest_email: str | None = None
    appointment_date: date
    start_time: str
    duration_minutes: int
    status: str
    queue_status: str | None = None
    booking_channel: str
    priority: str
    queue_position: int | None = None
    estimated_wait_minutes: int | None = None
    check_in_time: datetime | None = None
    completed_time: datetime | None = None
    notes: str | None = None
    cancellation_reason: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


def to_appointment_response(appointment: Appointment) -> AppointmentResponse:
    queue_status = queue_status_for(appointment)
    return AppointmentResponse(
        id=appointment.id,
        confirmation_code=appointment.confirmation_code,
        provider_id=appointment.provider_id,
        service_id=appointment.service_id,
        user_id=appointment.user_id,
        guest_name=appointment.guest_name,
        guest_phone=appointment.guest_phone,
        guest_email=appointment.guest_email,
        appointment_date=appointment.appointment_date,
        start_time=appointment.start_time,
        duration_minutes=appointment.duration_minutes,
        status=appointment.status,
        queue_status=queue_status.value if queue_status else None,
        booking_channel=appointment.booking_channel,
        priority=appointment.priority,
        queue_position=appointment.queue_position,
        estimated_wait_minutes=appointment.estimated_wait_minutes,
        check_in_time=appointment.check_in_time,
        completed_time=appointment.completed_time,
        notes=appointment.notes,
        cancellation_reason=appointment.cancellation_reason,
        created_at=appointment.created_at,
        updated_at=appointment.updated_at,
    )


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(data: CreateAppointmentRequest, booking: BookingService = Depends(get_booking_service)):
    ensure_database_ready()

    with booking_errors(booking):
        appointment = booking.book_appointment(
            service_id=data.service_id,
            day=data.date,
            start_time=data.time,
            priority=data.priority.value if data.priority else None,
            user_id=data.user_id,
            guest_name=data.guest.name if data.guest else None,
            guest_phone=data.guest.phone if data.guest else None,
            guest_email=data.guest.email if data.guest else None,
            booking_channel=data.booking_channel.value,
            notes=data.notes,
        )
        return to_appointment_response(appointment)


@router.get('/{appointment_id}', response_model=AppointmentResponse)
def get_appointment(appointment_id: str, booking: BookingService = Depends(get_booking_service)):
    ensure_database_ready()

    with booking_errors(booking):
        return to_appointment_response(booking.get_appointment(appointment_id))


@router.patch('/{appointment_id}', response_model=AppointmentResponse)
def update_appointment(
    appointment_id: str,
    data: UpdateAppointmentRequest,
    booking: BookingService = Depends(get_booking_service),
):
    ensure_database_ready()

    with booking_errors(booking):
        return to_appointment_response(booking.update_notes(appointment_id, data.notes))


@router.post('/{appointment_id}/transitions', response_model=AppointmentResponse)
def transition_appointment(
    appointment_id: str,
    data: TransitionRequest,
    booking: BookingService = Depends(get_booking_service),
):
    ensure_database_ready()

    with booking_errors(booking):
        appointment = booking.transition_appointment(appointment_id, data.action.value, reason=data.reason)
        return to_appointment_response(appointment)


@router.post('/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: str,
    data: CancelAppointmentRequest,
    booking: BookingService = Depends(get_booking_service),
):
    ensure_database_ready()

    with booking_errors(booking):
        return to_appointment_response(booking.cancel_appointment(appointment_id, reason=data.reason))
