"""
Persistence for providers, services and appointments.

The booking service only talks to the database through this class, so any
store that offers the same methods can stand in for it.
"""
import zlib
from datetime import date

from sqlalchemy import text
from sqlalchemy.orm import Session

from queuebook.core.errors import NotFound
from queuebook.models.appointment import Appointment, AppointmentStatus
from queuebook.models.provider import Provider
from queuebook.models.service import Service


class AppointmentRepository:
    def __init__(self, session: Session):
        self.session = session

    def load_appointments(self, provider_id: str, day: date, service_id: str | None = None) -> list[Appointment]:
        """All appointments of a provider's day, cancelled ones included, in creation order."""
        query = self.session.query(Appointment).filter(
            Appointment.provider_id == provider_id,
            Appointment.appointment_date == day,
        )
        if service_id is not None:
            query = query.filter(Appointment.service_id == service_id)
        return query.order_by(Appointment.created_at.asc()).all()

    def load_active_appointments(self, provider_id: str, day: date) -> list[Appointment]:
        return self.session.query(Appointment).filter(
            Appointment.provider_id == provider_id,
            Appointment.appointment_date == day,
            Appointment.status != AppointmentStatus.CANCELLED.value,
        ).all()

    def lock_partition(self, provider_id: str, day: date) -> None:
        """Hold a database lock on a provider's day until the transaction ends.

        Postgres takes a transaction-scoped advisory lock, so writers in other
        processes wait here. SQLite has no equivalent; its single-writer lock
        serializes the flush and the overlap check that follows it.
        """
        if self.session.get_bind().dialect.name != 'postgresql':
            return

        key = zlib.crc32(f'{provider_id}:{day.isoformat()}'.encode())
        self.session.execute(text('SELECT pg_advisory_xact_lock(:key)'), {'key': key})

    def get_appointment(self, appointment_id: str) -> Appointment:
        appointment = self.session.get(Appointment, appointment_id)
        if appointment is None:
            raise NotFound('Appointment not found.')
        return appointment

    def refresh(self, appointment: Appointment) -> Appointment:
        self.session.refresh(appointment)
        return appointment

    def save_appointment(self, appointment: Appointment) -> Appointment:
        self.session.add(appointment)
        self.session.flush()
        return appointment

    def get_provider(self, provider_id: str) -> Provider:
        provider = self.session.get(Provider, provider_id)
        if provider is None:
            raise NotFound('Provider not found.')
        return provider

    def save_provider(self, provider: Provider) -> Provider:
        self.session.add(provider)
        self.session.flush()
        return provider

    def load_service_config(self, service_id: str) -> Service:
        service = self.session.get(Service, service_id)
        if service is None:
            raise NotFound('Service not found.')
        return service

    def save_service(self, service: Service) -> Service:
        self.session.add(service)
        self.session.flush()
        return service

    def list_services(self, provider_id: str) -> list[Service]:
        return self.session.query(Service).filter(
            Service.provider_id == provider_id,
        ).order_by(Service.created_at.asc()).all()

    def load_working_hours(self, provider_id: str) -> dict:
        return dict(self.get_provider(provider_id).working_hours or {})

    def load_holidays(self, provider_id: str) -> list[str]:
        return list(self.get_provider(provider_id).holidays or [])

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()
