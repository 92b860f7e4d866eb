"""Provider slot availability endpoints."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from appointment_hub.api.dependencies import get_booking_service
from appointment_hub.scheduling.booking import BookingService
from appointment_hub.scheduling.models import DaySlots

router = APIRouter(prefix="/providers")


class AvailabilityResponse(BaseModel):
    provider_id: str
    reference_date: date
    total_available: int
    days: list[DaySlots]


class DateTimesResponse(BaseModel):
    provider_id: str
    date: date
    times: list[str]


@router.get("/{provider_id}/slots", response_model=AvailabilityResponse)
async def get_provider_slots(
    provider_id: str,
    reference_date: Optional[date] = Query(None, description="Defaults to today"),
    service: BookingService = Depends(get_booking_service),
) -> AvailabilityResponse:
    """Return the provider's bookable grid over the horizon."""
    reference_date = reference_date or service.clock()
    view = await service.availability(provider_id, reference_date)
    return AvailabilityResponse(
        provider_id=provider_id,
        reference_date=reference_date,
        total_available=view.total_available(),
        days=view.days,
    )


@router.get("/{provider_id}/slots/{day}", response_model=DateTimesResponse)
async def get_provider_times(
    provider_id: str,
    day: date,
    reference_date: Optional[date] = Query(None, description="Defaults to today"),
    service: BookingService = Depends(get_booking_service),
) -> DateTimesResponse:
    """Return the free times on one date."""
    view = await service.availability(provider_id, reference_date)
    return DateTimesResponse(provider_id=provider_id, date=day, times=view.times_for_date(day))
