"""Appointment booking, cancellation, completion and reschedule proposals."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, field_validator

from appointment_hub.api.dependencies import (
    get_appointment_store,
    get_booking_service,
    get_reschedule_resolver,
)
from appointment_hub.core.stores import AppointmentStore
from appointment_hub.errors import NotFoundError
from appointment_hub.notifications.models import Audience
from appointment_hub.scheduling.booking import BookingService
from appointment_hub.scheduling.models import Appointment, AppointmentStatus, validate_hhmm
from appointment_hub.scheduling.reschedule import RescheduleProposal, RescheduleResolver

router = APIRouter(prefix="/appointments")


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class AppointmentCreate(BaseModel):
    provider_id: str
    customer_id: str
    date: date
    time: str

    @field_validator("time")
    @classmethod
    def _hhmm(cls, v: str) -> str:
        return validate_hhmm(v)


class CancelRequest(BaseModel):
    reason: Optional[str] = None
    cancelled_by: Audience = Audience.CUSTOMER


class RescheduleRequest(BaseModel):
    new_date: date
    new_time: str
    provider_name: str = ""
    provider_emoji: str = ""

    @field_validator("new_time")
    @classmethod
    def _hhmm(cls, v: str) -> str:
        return validate_hhmm(v)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("", response_model=Appointment, status_code=201)
async def book_appointment(
    body: AppointmentCreate,
    service: BookingService = Depends(get_booking_service),
) -> Appointment:
    """Book a free slot; 409 when it is already taken."""
    return await service.book(body.provider_id, body.customer_id, body.date, body.time)


@router.get("", response_model=list[Appointment])
async def list_appointments(
    provider_id: Optional[str] = Query(None),
    customer_id: Optional[str] = Query(None),
    status: Optional[AppointmentStatus] = Query(None),
    store: AppointmentStore = Depends(get_appointment_store),
) -> list[Appointment]:
    return await store.list(provider_id=provider_id, customer_id=customer_id, status=status)


@router.get("/{appointment_id}", response_model=Appointment)
async def get_appointment(
    appointment_id: str,
    store: AppointmentStore = Depends(get_appointment_store),
) -> Appointment:
    appt = await store.get(appointment_id)
    if appt is None:
        raise NotFoundError(f"Appointment {appointment_id} not found")
    return appt


@router.post("/{appointment_id}/cancel", response_model=Appointment)
async def cancel_appointment(
    appointment_id: str,
    body: Optional[CancelRequest] = None,
    service: BookingService = Depends(get_booking_service),
) -> Appointment:
    body = body or CancelRequest()
    return await service.cancel(appointment_id, reason=body.reason, cancelled_by=body.cancelled_by)


@router.post("/{appointment_id}/complete", response_model=Appointment)
async def complete_appointment(
    appointment_id: str,
    service: BookingService = Depends(get_booking_service),
) -> Appointment:
    return await service.complete(appointment_id)


@router.post("/{appointment_id}/reschedule", response_model=RescheduleProposal, status_code=201)
async def propose_reschedule(
    appointment_id: str,
    body: RescheduleRequest,
    resolver: RescheduleResolver = Depends(get_reschedule_resolver),
) -> RescheduleProposal:
    """Provider proposes a new time; the customer receives a confirmation request."""
    return await resolver.propose(
        appointment_id,
        body.new_date,
        body.new_time,
        provider_name=body.provider_name,
        provider_emoji=body.provider_emoji,
    )
