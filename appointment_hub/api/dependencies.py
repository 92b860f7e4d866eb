"""FastAPI dependencies resolving stores and services from app state."""

from fastapi import Depends, Request

from appointment_hub.core.stores import AppointmentStore, AvailabilityStore, NotificationStore
from appointment_hub.scheduling.availability import AvailabilityService
from appointment_hub.scheduling.booking import BookingService
from appointment_hub.scheduling.reschedule import RescheduleResolver


def get_appointment_store(request: Request) -> AppointmentStore:
    return request.app.state.appointment_store


def get_notification_store(request: Request) -> NotificationStore:
    return request.app.state.notification_store


def get_availability_store(request: Request) -> AvailabilityStore:
    return request.app.state.availability_store


def get_booking_service(
    request: Request,
    appointments: AppointmentStore = Depends(get_appointment_store),
    notifications: NotificationStore = Depends(get_notification_store),
    blocks: AvailabilityStore = Depends(get_availability_store),
) -> BookingService:
    state = request.app.state
    return BookingService(
        appointments,
        notifications,
        generator=state.slot_generator,
        events=state.event_logger,
        clock=state.clock,
        blocks=blocks,
    )


def get_reschedule_resolver(
    request: Request,
    appointments: AppointmentStore = Depends(get_appointment_store),
    notifications: NotificationStore = Depends(get_notification_store),
    blocks: AvailabilityStore = Depends(get_availability_store),
) -> RescheduleResolver:
    state = request.app.state
    return RescheduleResolver(
        appointments,
        notifications,
        generator=state.slot_generator,
        events=state.event_logger,
        clock=state.clock,
        blocks=blocks,
    )


def get_availability_service(
    request: Request,
    appointments: AppointmentStore = Depends(get_appointment_store),
    blocks: AvailabilityStore = Depends(get_availability_store),
) -> AvailabilityService:
    state = request.app.state
    return AvailabilityService(
        blocks,
        appointments,
        generator=state.slot_generator,
        events=state.event_logger,
    )
