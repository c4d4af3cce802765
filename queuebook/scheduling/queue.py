"""Queue sequencing for a (provider, service, date) partition.

Waiting appointments are served by priority class first (urgent before low)
and scheduled start time second. Python's sort is stable, so callers that pass
appointments in creation order keep that order for exact ties; the creation
timestamp is also part of the key for callers that do not.
"""
import enum
from collections.abc import Iterable
from datetime import datetime

from pydantic import BaseModel

from queuebook.core.errors import InvalidConfiguration, NotWaiting
from queuebook.models.appointment import Appointment, AppointmentStatus, Priority
from queuebook.scheduling.calendar import parse_hhmm
from queuebook.scheduling.slots import to_minutes

PRIORITY_RANK = {
    Priority.URGENT.value: 0,
    Priority.HIGH.value: 1,
    Priority.MEDIUM.value: 2,
    Priority.LOW.value: 3,
}

# checked-in appointments still wait for service
WAITING_STATUSES = frozenset({AppointmentStatus.SCHEDULED.value, AppointmentStatus.CONFIRMED.value})


class QueueStatus(str, enum.Enum):
    WAITING = 'waiting'
    CALLED = 'called'
    IN_SERVICE = 'in-service'
    COMPLETED = 'completed'
    NO_SHOW = 'no-show'


_QUEUE_STATUS_BY_APPOINTMENT_STATUS = {
    AppointmentStatus.SCHEDULED.value: QueueStatus.WAITING,
    AppointmentStatus.CONFIRMED.value: QueueStatus.WAITING,
    AppointmentStatus.IN_PROGRESS.value: QueueStatus.IN_SERVICE,
    AppointmentStatus.COMPLETED.value: QueueStatus.COMPLETED,
    AppointmentStatus.NO_SHOW.value: QueueStatus.NO_SHOW,
}


class QueueEntry(BaseModel):
    appointment_id: str
    user_id: str | None = None
    guest_name: str | None = None
    priority: str
    start_time: str
    duration_minutes: int
    appointment_status: str
    queue_status: QueueStatus
    position: int | None = None
    estimated_wait_minutes: int | None = None
    check_in_time: datetime | None = None


class QueueStats(BaseModel):
    total: int = 0
    waiting: int = 0
    in_service: int = 0
    completed: int = 0
    no_show: int = 0


def is_waiting(appointment: Appointment) -> bool:
    return appointment.status in WAITING_STATUSES


def queue_status_for(appointment: Appointment) -> QueueStatus | None:
    """Cancelled appointments have left the queue and map to None."""
    return _QUEUE_STATUS_BY_APPOINTMENT_STATUS.get(appointment.status)


def priority_rank(priority: str) -> int:
    try:
        return PRIORITY_RANK[priority]
    except KeyError as exc:
        raise InvalidConfiguration(f"Unknown priority '{priority}'.") from exc


def queue_order_key(appointment: Appointment) -> tuple[int, int, datetime]:
    return (
        priority_rank(appointment.priority),
        to_minutes(parse_hhmm(appointment.start_time)),
        appointment.created_at or datetime.min,
    )


def resequence(
    appointments: Iterable[Appointment],
    service_id: str | None = None,
    buffer_minutes: int = 0,
) -> list[QueueEntry]:
    waiting = [
        appointment
        for appointment in appointments
        if is_waiting(appointment) and (service_id is None or appointment.service_id == service_id)
    ]
    waiting.sort(key=queue_order_key)

    entries: list[QueueEntry] = []
    wait_minutes = 0
    for position, appointment in enumerate(waiting, start=1):
        entries.append(
            QueueEntry(
                appointment_id=appointment.id,
                user_id=appointment.user_id,
                guest_name=appointment.guest_name,
                priority=appointment.priority,
                start_time=appointment.start_time,
                duration_minutes=appointment.duration_minutes,
                appointment_status=appointment.status,
                queue_status=QueueStatus.WAITING,
                position=position,
                estimated_wait_minutes=wait_minutes,
                check_in_time=appointment.check_in_time,
            )
        )
        wait_minutes += appointment.duration_minutes + buffer_minutes

    return entries


def admit(
    appointment: Appointment,
    partition_appointments: Iterable[Appointment],
    buffer_minutes: int = 0,
) -> tuple[int, int]:
    """Return the (position, estimated wait) a new appointment gets in its partition."""
    if not is_waiting(appointment):
        raise NotWaiting(f"Only waiting appointments can be admitted, got '{appointment.status}'.")

    members = [existing for existing in partition_appointments if existing.id != appointment.id]
    members.append(appointment)

    for entry in resequence(members, service_id=appointment.service_id, buffer_minutes=buffer_minutes):
        if entry.appointment_id == appointment.id:
            return entry.position, entry.estimated_wait_minutes

    raise NotWaiting(f"Appointment {appointment.id} was not placed in the queue.")


def summarize(appointments: Iterable[Appointment]) -> QueueStats:
    stats = QueueStats()
    for appointment in appointments:
        queue_status = queue_status_for(appointment)
        if queue_status is None:
            continue
        stats.total += 1
        if queue_status == QueueStatus.WAITING:
            stats.waiting += 1
        elif queue_status == QueueStatus.IN_SERVICE:
            stats.in_service += 1
        elif queue_status == QueueStatus.COMPLETED:
            stats.completed += 1
        elif queue_status == QueueStatus.NO_SHOW:
            stats.no_show += 1
    return stats
