from datetime import date, datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field, field_validator

from queuebook.core.dependencies import booking_errors, ensure_database_ready, get_booking_service
from queuebook.models.appointment import Priority
from queuebook.models.provider import PROVIDER_TYPES
from queuebook.services.booking_service import BookingService

router = APIRouter(tags=['providers'])


class CreateProviderRequest(BaseModel):
    name: str
    provider_type: str = 'other'
    working_hours: dict[str, dict]
    holidays: list[date] = Field(default_factory=list)

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Provider name is required.')
        return normalized

    @field_validator('provider_type')
    @classmethod
    def validate_provider_type(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in PROVIDER_TYPES:
            raise ValueError('Invalid provider type.')
        return normalized


class ProviderResponse(BaseModel):
    id: str
    name: str
    provider_type: str
    working_hours: dict
    holidays: list[str]
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class CreateServiceRequest(BaseModel):
    name: str
    duration_minutes: int = Field(gt=0, le=24 * 60)
    default_priority: Priority = Priority.MEDIUM
    allowed_priorities: list[Priority] | None = None
    max_advance_booking_days: int | None = Field(default=30, ge=0)
    allow_walk_in: bool = True

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Service name is required.')
        return normalized


class ServiceResponse(BaseModel):
    id: str
    provider_id: str
    name: str
    duration_minutes: int
    default_priority: str
    allowed_priorities: list[str]
    max_advance_booking_days: int | None = None
    allow_walk_in: bool

    class Config:
        from_attributes = True


@router.post('', response_model=ProviderResponse, status_code=status.HTTP_201_CREATED)
def create_provider(data: CreateProviderRequest, booking: BookingService = Depends(get_booking_service)):
    ensure_database_ready()

    with booking_errors(booking):
        return booking.create_provider(
            name=data.name,
            working_hours=data.working_hours,
            holidays=[holiday.isoformat() for holiday in data.holidays],
            provider_type=data.provider_type,
        )


@router.get('/{provider_id}', response_model=ProviderResponse)
def get_provider(provider_id: str, booking: BookingService = Depends(get_booking_service)):
    ensure_database_ready()

    with booking_errors(booking):
        return booking.get_provider(provider_id)


@router.post('/{provider_id}/services', response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
def create_service(
    provider_id: str,
    data: CreateServiceRequest,
    booking: BookingService = Depends(get_booking_service),
):
    ensure_database_ready()

    allowed_priorities = None
    if data.allowed_priorities is not None:
        allowed_priorities = [priority.value for priority in data.allowed_priorities]

    with booking_errors(booking):
        return booking.create_service(
            provider_id=provider_id,
            name=data.name,
            duration_minutes=data.duration_minutes,
            default_priority=data.default_priority.value,
            allowed_priorities=allowed_priorities,
            max_advance_booking_days=data.max_advance_booking_days,
            allow_walk_in=data.allow_walk_in,
        )


@router.get('/{provider_id}/services', response_model=list[ServiceResponse])
def list_services(provider_id: str, booking: BookingService = Depends(get_booking_service)):
    ensure_database_ready()

    with booking_errors(booking):
        return booking.list_services(provider_id)
