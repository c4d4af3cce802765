"""
Booking service: the operations the API layer calls.

Every write runs inside the partition lock for the provider's day and follows
the same unit of work: load the day's appointments, validate, write,
resequence the affected queue, commit.
"""
import logging
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from datetime import date, datetime, timedelta

from sqlalchemy.exc import IntegrityError

from queuebook.core import config
from queuebook.core.errors import (
    BookingNotAllowed,
    InvalidConfiguration,
    NotFound,
    PartitionConflict,
    QueueEmpty,
    SchedulingError,
    SlotUnavailable,
)
from queuebook.database import partition_lock
from queuebook.models.appointment import Appointment, AppointmentStatus, BookingChannel, Priority
from queuebook.models.provider import PROVIDER_TYPES, Provider
from queuebook.models.service import Service
from queuebook.repositories.appointment_repository import AppointmentRepository
from queuebook.scheduling.calendar import (
    dump_working_hours,
    is_holiday,
    parse_hhmm,
    parse_holidays,
    parse_working_hours,
)
from queuebook.scheduling.lifecycle import Action, create_appointment, transition
from queuebook.scheduling.queue import PRIORITY_RANK, QueueEntry, QueueStats, admit, resequence, summarize
from queuebook.scheduling.slots import EXCLUSION_MODE_INTERVAL, appointment_interval, generate_slots, overlaps

logger = logging.getLogger(__name__)


class BookingService:
    def __init__(
        self,
        repository: AppointmentRepository,
        slot_granularity_minutes: int = config.SLOT_GRANULARITY_MINUTES,
        exclusion_mode: str = config.SLOT_EXCLUSION_MODE,
        queue_buffer_minutes: int = config.QUEUE_BUFFER_MINUTES,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.repository = repository
        self.slot_granularity_minutes = slot_granularity_minutes
        self.exclusion_mode = exclusion_mode
        self.queue_buffer_minutes = queue_buffer_minutes
        self.clock = clock

    # -- provider setup ---------------------------------------------------

    def create_provider(
        self,
        name: str,
        working_hours: dict,
        holidays: Iterable[str] = (),
        provider_type: str = 'other',
    ) -> Provider:
        if provider_type not in PROVIDER_TYPES:
            raise InvalidConfiguration(f"Unknown provider type '{provider_type}'.")

        provider = Provider(
            name=name,
            provider_type=provider_type,
            working_hours=dump_working_hours(parse_working_hours(working_hours)),
            holidays=sorted(day.isoformat() for day in parse_holidays(holidays)),
            created_at=self.clock(),
        )
        self.repository.save_provider(provider)
        self.repository.commit()
        logger.info('Created provider %s (%s)', provider.id, provider.name)
        return provider

    def get_provider(self, provider_id: str) -> Provider:
        return self.repository.get_provider(provider_id)

    def create_service(
        self,
        provider_id: str,
        name: str,
        duration_minutes: int,
        default_priority: str = Priority.MEDIUM.value,
        allowed_priorities: Iterable[str] | None = None,
        max_advance_booking_days: int | None = 30,
        allow_walk_in: bool = True,
    ) -> Service:
        self.repository.get_provider(provider_id)

        allowed = list(allowed_priorities) if allowed_priorities is not None else list(PRIORITY_RANK)
        if duration_minutes <= 0:
            raise InvalidConfiguration('Service duration must be a positive number of minutes.')
        unknown = [priority for priority in [default_priority, *allowed] if priority not in PRIORITY_RANK]
        if unknown:
            raise InvalidConfiguration(f"Unknown priorities: {', '.join(unknown)}.")
        if default_priority not in allowed:
            raise InvalidConfiguration('Default priority must be one of the allowed priorities.')
        if max_advance_booking_days is not None and max_advance_booking_days < 0:
            raise InvalidConfiguration('Advance booking window cannot be negative.')

        service = Service(
            provider_id=provider_id,
            name=name,
            duration_minutes=duration_minutes,
            default_priority=default_priority,
            allowed_priorities=allowed,
            max_advance_booking_days=max_advance_booking_days,
            allow_walk_in=allow_walk_in,
            created_at=self.clock(),
        )
        self.repository.save_service(service)
        self.repository.commit()
        logger.info('Created service %s (%s) for provider %s', service.id, service.name, provider_id)
        return service

    def list_services(self, provider_id: str) -> list[Service]:
        self.repository.get_provider(provider_id)
        return self.repository.list_services(provider_id)

    # -- availability -----------------------------------------------------

    def get_available_slots(self, service_id: str, day: date) -> list[str]:
        service = self.repository.load_service_config(service_id)
        if not self._within_booking_window(service, day):
            return []
        if is_holiday(day, self.repository.load_holidays(service.provider_id)):
            return []

        appointments = self.repository.load_appointments(service.provider_id, day)
        return [slot for slot in self._slots_for(service, day, appointments) if not self._has_started(day, slot)]

    def get_service(self, service_id: str) -> Service:
        return self.repository.load_service_config(service_id)

    def _has_started(self, day: date, start_time: str) -> bool:
        now = self.clock()
        return day == now.date() and parse_hhmm(start_time) <= now.time()

    def _slots_for(self, service: Service, day: date, appointments: list[Appointment]):
        return generate_slots(
            service,
            day,
            appointments,
            self.repository.load_working_hours(service.provider_id),
            slot_granularity_minutes=self.slot_granularity_minutes,
            exclusion_mode=self.exclusion_mode,
        )

    def _within_booking_window(self, service: Service, day: date) -> bool:
        today = self.clock().date()
        if day < today:
            return False
        if service.max_advance_booking_days is None:
            return True
        return day <= today + timedelta(days=service.max_advance_booking_days)

    # -- booking ----------------------------------------------------------

    def book_appointment(
        self,
        service_id: str,
        day: date,
        start_time: str,
        priority: str | None = None,
        user_id: str | None = None,
        guest_name: str | None = None,
        guest_phone: str | None = None,
        guest_email: str | None = None,
        booking_channel: str = BookingChannel.WEB.value,
        notes: str | None = None,
    ) -> Appointment:
        service = self.repository.load_service_config(service_id)

        priority = priority or service.default_priority
        if priority not in (service.allowed_priorities or PRIORITY_RANK):
            raise BookingNotAllowed(f"Priority '{priority}' is not available for {service.name}.")
        if booking_channel == BookingChannel.WALK_IN.value and not service.allow_walk_in:
            raise BookingNotAllowed(f'{service.name} does not accept walk-ins.')
        if not self._within_booking_window(service, day):
            raise BookingNotAllowed(
                f'{service.name} can only be booked up to {service.max_advance_booking_days} days ahead '
                'and not in the past.'
            )
        if is_holiday(day, self.repository.load_holidays(service.provider_id)):
            raise SlotUnavailable(f'The provider is closed on {day.isoformat()}.')
        if self._has_started(day, start_time):
            raise BookingNotAllowed('Appointments must be scheduled in the future.')

        working_hours = self.repository.load_working_hours(service.provider_id)

        with self._partition_write(service.provider_id, day):
            try:
                existing = self.repository.load_appointments(service.provider_id, day)
                appointment = create_appointment(
                    service,
                    day,
                    start_time,
                    existing,
                    working_hours,
                    priority=priority,
                    booking_channel=booking_channel,
                    user_id=user_id,
                    guest_name=guest_name,
                    guest_phone=guest_phone,
                    guest_email=guest_email,
                    notes=notes,
                    now=self.clock(),
                    slot_granularity_minutes=self.slot_granularity_minutes,
                    exclusion_mode=self.exclusion_mode,
                )
                same_service = [existing_appointment for existing_appointment in existing
                                if existing_appointment.service_id == service.id]
                appointment.queue_position, appointment.estimated_wait_minutes = admit(
                    appointment, same_service, buffer_minutes=self.queue_buffer_minutes,
                )
                self.repository.save_appointment(appointment)
                self._check_no_overlap(appointment)
                self._persist_queue([*same_service, appointment], service.id)
                self.repository.commit()
            except IntegrityError as exc:
                self.repository.rollback()
                logger.warning(
                    'Lost booking race for provider %s on %s at %s',
                    service.provider_id, day.isoformat(), start_time,
                )
                raise PartitionConflict('Another booking took this slot. Reload the slots and try again.') from exc
            except SchedulingError:
                self.repository.rollback()
                raise

        logger.info(
            'Booked appointment %s for service %s on %s at %s (position %s)',
            appointment.id, service.id, day.isoformat(), appointment.start_time, appointment.queue_position,
        )
        return appointment

    @contextmanager
    def _partition_write(self, provider_id: str, day: date) -> Iterator[None]:
        with partition_lock(provider_id, day):
            self.repository.lock_partition(provider_id, day)
            yield

    def _check_no_overlap(self, appointment: Appointment) -> None:
        """Re-read the day after the flush so a stale read cannot double-book."""
        if self.exclusion_mode != EXCLUSION_MODE_INTERVAL:
            return

        booked = appointment_interval(appointment)
        for other in self.repository.load_active_appointments(appointment.provider_id, appointment.appointment_date):
            if other.id != appointment.id and overlaps(booked, appointment_interval(other)):
                logger.warning(
                    'Booking %s at %s overlaps appointment %s at %s',
                    appointment.id, appointment.start_time, other.id, other.start_time,
                )
                raise PartitionConflict('Another booking overlaps this time. Reload the slots and try again.')

    # -- lifecycle --------------------------------------------------------

    def get_appointment(self, appointment_id: str) -> Appointment:
        return self.repository.get_appointment(appointment_id)

    def update_notes(self, appointment_id: str, notes: str | None) -> Appointment:
        appointment = self.repository.get_appointment(appointment_id)
        appointment.notes = notes
        appointment.updated_at = self.clock()
        self.repository.commit()
        return appointment

    def transition_appointment(self, appointment_id: str, action: str, reason: str | None = None) -> Appointment:
        appointment = self.repository.get_appointment(appointment_id)

        with self._partition_write(appointment.provider_id, appointment.appointment_date):
            self.repository.refresh(appointment)
            self._transition_locked(appointment, action, reason)

        return appointment

    def cancel_appointment(self, appointment_id: str, reason: str | None = None) -> Appointment:
        return self.transition_appointment(appointment_id, Action.CANCEL.value, reason=reason)

    def call_next(self, provider_id: str, service_id: str, day: date) -> Appointment:
        """Start service for the first checked-in appointment in queue order."""
        self._service_of_provider(provider_id, service_id)

        with self._partition_write(provider_id, day):
            partition = self.repository.load_appointments(provider_id, day, service_id=service_id)
            by_id = {appointment.id: appointment for appointment in partition}
            for entry in resequence(partition, service_id, buffer_minutes=self.queue_buffer_minutes):
                if entry.appointment_status == AppointmentStatus.CONFIRMED.value:
                    appointment = by_id[entry.appointment_id]
                    self._transition_locked(appointment, Action.CALL_NEXT.value)
                    return appointment

        raise QueueEmpty('No checked-in appointments are waiting.')

    def _transition_locked(self, appointment: Appointment, action: str, reason: str | None = None) -> None:
        previous_status = appointment.status
        try:
            transition(appointment, action, now=self.clock(), reason=reason)
            partition = self.repository.load_appointments(
                appointment.provider_id, appointment.appointment_date, service_id=appointment.service_id,
            )
            self._persist_queue(partition, appointment.service_id)
            self.repository.commit()
        except SchedulingError:
            self.repository.rollback()
            raise

        logger.info(
            'Appointment %s moved from %s to %s via %s',
            appointment.id, previous_status, appointment.status, action,
        )

    # -- queue ------------------------------------------------------------

    def get_queue_snapshot(self, provider_id: str, service_id: str, day: date) -> list[QueueEntry]:
        self._service_of_provider(provider_id, service_id)
        partition = self.repository.load_appointments(provider_id, day, service_id=service_id)
        return resequence(partition, service_id, buffer_minutes=self.queue_buffer_minutes)

    def get_queue_stats(self, provider_id: str, service_id: str, day: date) -> QueueStats:
        self._service_of_provider(provider_id, service_id)
        return summarize(self.repository.load_appointments(provider_id, day, service_id=service_id))

    def _service_of_provider(self, provider_id: str, service_id: str) -> Service:
        service = self.repository.load_service_config(service_id)
        if service.provider_id != provider_id:
            raise NotFound('Service not found for this provider.')
        return service

    def _persist_queue(self, partition: list[Appointment], service_id: str) -> list[QueueEntry]:
        entries = resequence(partition, service_id, buffer_minutes=self.queue_buffer_minutes)
        placements = {entry.appointment_id: entry for entry in entries}

        for appointment in partition:
            if appointment.service_id != service_id:
                continue
            entry = placements.get(appointment.id)
            appointment.queue_position = entry.position if entry else None
            appointment.estimated_wait_minutes = entry.estimated_wait_minutes if entry else None

        return entries
