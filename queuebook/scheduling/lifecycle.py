"""Appointment lifecycle.

    scheduled -> confirmed -> in-progress -> completed
    scheduled | confirmed -> cancelled
    scheduled | confirmed | in-progress -> no-show

completed, cancelled and no-show are terminal.
"""
import enum
import uuid
from collections.abc import Iterable, Mapping
from datetime import date, datetime

from queuebook.core.errors import DurationExceedsWindow, InvalidTransition, SlotUnavailable
from queuebook.models.appointment import Appointment, AppointmentStatus, BookingChannel
from queuebook.scheduling.calendar import format_hhmm, get_window, parse_hhmm
from queuebook.scheduling.queue import is_waiting
from queuebook.scheduling.slots import (
    DEFAULT_SLOT_GRANULARITY_MINUTES,
    EXCLUSION_MODE_INTERVAL,
    generate_slots,
    to_minutes,
)


class Action(str, enum.Enum):
    CHECK_IN = 'check_in'
    START_SERVICE = 'start_service'
    CALL_NEXT = 'call_next'
    COMPLETE = 'complete'
    CANCEL = 'cancel'
    NO_SHOW = 'no_show'


ACTION_TARGETS = {
    Action.CHECK_IN.value: AppointmentStatus.CONFIRMED.value,
    Action.START_SERVICE.value: AppointmentStatus.IN_PROGRESS.value,
    Action.CALL_NEXT.value: AppointmentStatus.IN_PROGRESS.value,
    Action.COMPLETE.value: AppointmentStatus.COMPLETED.value,
    Action.CANCEL.value: AppointmentStatus.CANCELLED.value,
    Action.NO_SHOW.value: AppointmentStatus.NO_SHOW.value,
}

ALLOWED_TRANSITIONS = {
    AppointmentStatus.SCHEDULED.value: {
        AppointmentStatus.CONFIRMED.value,
        AppointmentStatus.CANCELLED.value,
        AppointmentStatus.NO_SHOW.value,
    },
    AppointmentStatus.CONFIRMED.value: {
        AppointmentStatus.IN_PROGRESS.value,
        AppointmentStatus.CANCELLED.value,
        AppointmentStatus.NO_SHOW.value,
    },
    AppointmentStatus.IN_PROGRESS.value: {
        AppointmentStatus.COMPLETED.value,
        AppointmentStatus.NO_SHOW.value,
    },
}

TERMINAL_STATUSES = frozenset({
    AppointmentStatus.COMPLETED.value,
    AppointmentStatus.CANCELLED.value,
    AppointmentStatus.NO_SHOW.value,
})


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, set())


def transition(
    appointment: Appointment,
    action: str,
    now: datetime | None = None,
    reason: str | None = None,
) -> Appointment:
    """Apply ``action`` to ``appointment`` in place.

    Raises InvalidTransition for unknown actions and for moves the lifecycle
    does not allow. The caller is expected to resequence the partition.
    """
    action_value = action.value if isinstance(action, Action) else action
    target = ACTION_TARGETS.get(action_value)
    if target is None:
        raise InvalidTransition(appointment.status, action_value)
    if not can_transition(appointment.status, target):
        raise InvalidTransition(appointment.status, target)

    now = now or datetime.now()
    appointment.status = target
    appointment.updated_at = now

    if target == AppointmentStatus.CONFIRMED.value:
        appointment.check_in_time = now
    elif target == AppointmentStatus.COMPLETED.value:
        appointment.completed_time = now
    elif target == AppointmentStatus.CANCELLED.value and reason:
        appointment.cancellation_reason = reason

    if not is_waiting(appointment):
        appointment.queue_position = None
        appointment.estimated_wait_minutes = None

    return appointment


def create_appointment(
    service,
    day: date,
    start_time: str,
    existing_appointments: Iterable[Appointment],
    working_hours: Mapping,
    *,
    priority: str | None = None,
    booking_channel: str = BookingChannel.WEB.value,
    user_id: str | None = None,
    guest_name: str | None = None,
    guest_phone: str | None = None,
    guest_email: str | None = None,
    notes: str | None = None,
    now: datetime | None = None,
    slot_granularity_minutes: int = DEFAULT_SLOT_GRANULARITY_MINUTES,
    exclusion_mode: str = EXCLUSION_MODE_INTERVAL,
) -> Appointment:
    """Build a new ``scheduled`` appointment for a free slot."""
    requested = format_hhmm(parse_hhmm(start_time))
    slots = generate_slots(
        service,
        day,
        existing_appointments,
        working_hours,
        slot_granularity_minutes=slot_granularity_minutes,
        exclusion_mode=exclusion_mode,
    )
    if requested not in slots:
        raise SlotUnavailable(f"{day.isoformat()} {requested} is not available for {service.name}.")

    _, close = get_window(day, working_hours)
    if to_minutes(parse_hhmm(requested)) + service.duration_minutes > to_minutes(close):
        raise DurationExceedsWindow(
            f"A {service.duration_minutes} minute appointment at {requested} runs past closing "
            f"time {format_hhmm(close)}."
        )

    now = now or datetime.now()
    return Appointment(
        id=str(uuid.uuid4()),
        provider_id=service.provider_id,
        service_id=service.id,
        user_id=user_id,
        guest_name=guest_name,
        guest_phone=guest_phone,
        guest_email=guest_email,
        appointment_date=day,
        start_time=requested,
        duration_minutes=service.duration_minutes,
        status=AppointmentStatus.SCHEDULED.value,
        booking_channel=booking_channel,
        priority=priority or service.default_priority or 'medium',
        notes=notes,
        created_at=now,
        updated_at=now,
    )
