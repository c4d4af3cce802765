from datetime import date

from fastapi import APIRouter, Depends, Query

from queuebook.core.dependencies import booking_errors, ensure_database_ready, get_booking_service
from queuebook.routes.appointment_routes import AppointmentResponse, to_appointment_response
from queuebook.scheduling.queue import QueueEntry, QueueStats
from queuebook.services.booking_service import BookingService

router = APIRouter(tags=['queue'])


def _resolve_day(day: date | None, booking: BookingService) -> date:
    return day or booking.clock().date()


@router.get('/{provider_id}/{service_id}', response_model=list[QueueEntry])
def get_queue_snapshot(
    provider_id: str,
    service_id: str,
    day: date | None = Query(default=None, alias='date'),
    booking: BookingService = Depends(get_booking_service),
):
    ensure_database_ready()

    with booking_errors(booking):
        return booking.get_queue_snapshot(provider_id, service_id, _resolve_day(day, booking))


@router.get('/{provider_id}/{service_id}/stats', response_model=QueueStats)
def get_queue_stats(
    provider_id: str,
    service_id: str,
    day: date | None = Query(default=None, alias='date'),
    booking: BookingService = Depends(get_booking_service),
):
    ensure_database_ready()

    with booking_errors(booking):
        return booking.get_queue_stats(provider_id, service_id, _resolve_day(day, booking))


@router.post('/{provider_id}/{service_id}/call-next', response_model=AppointmentResponse)
def call_next(
    provider_id: str,
    service_id: str,
    day: date | None = Query(default=None, alias='date'),
    booking: BookingService = Depends(get_booking_service),
):
    ensure_database_ready()

    with booking_errors(booking):
        return to_appointment_response(booking.call_next(provider_id, service_id, _resolve_day(day, booking)))
