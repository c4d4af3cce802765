from datetime import date

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from queuebook.core.dependencies import booking_errors, ensure_database_ready, get_booking_service
from queuebook.services.booking_service import BookingService

router = APIRouter(tags=['availability'])


class AvailableSlotsResponse(BaseModel):
    service_id: str
    date: date
    duration_minutes: int
    slots: list[str]


@router.get('/slots', response_model=AvailableSlotsResponse)
def list_available_slots(
    service_id: str = Query(...),
    day: date = Query(..., alias='date'),
    booking: BookingService = Depends(get_booking_service),
):
    ensure_database_ready()

    with booking_errors(booking):
        service = booking.get_service(service_id)
        slots = booking.get_available_slots(service_id, day)

    return AvailableSlotsResponse(
        service_id=service_id,
        date=day,
        duration_minutes=service.duration_minutes,
        slots=slots,
    )
