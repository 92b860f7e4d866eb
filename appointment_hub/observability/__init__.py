"""Booking event telemetry."""

from appointment_hub.observability.events import (
    AppointmentEvent,
    AvailabilityEvent,
    BookingEvent,
    EventType,
    RescheduleEvent,
    SlotsEvent,
)
from appointment_hub.observability.logger import BookingEventLogger, get_event_logger

__all__ = [
    "AppointmentEvent",
    "AvailabilityEvent",
    "BookingEvent",
    "BookingEventLogger",
    "EventType",
    "RescheduleEvent",
    "SlotsEvent",
    "get_event_logger",
]
