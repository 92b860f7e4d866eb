"""Persistence for appointments, availability and notifications."""

from appointment_hub.core.stores import (
    AppointmentStore,
    AvailabilityStore,
    InMemoryAppointmentStore,
    InMemoryAvailabilityStore,
    InMemoryNotificationStore,
    NotificationStore,
)

__all__ = [
    "AppointmentStore",
    "AvailabilityStore",
    "InMemoryAppointmentStore",
    "InMemoryAvailabilityStore",
    "InMemoryNotificationStore",
    "NotificationStore",
]
