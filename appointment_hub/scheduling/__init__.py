"""Slot availability, booking and reschedule services."""

from appointment_hub.scheduling.models import (
    Appointment,
    AppointmentStatus,
    AvailabilityBlock,
    ConfirmationDecision,
    DaySlots,
    DecisionAction,
    RescheduleChoice,
    RescheduleState,
    TimeSlot,
)
from appointment_hub.scheduling.slots import AvailabilityView, SlotGenerator, generate_slots

__all__ = [
    "Appointment",
    "AppointmentStatus",
    "AvailabilityBlock",
    "AvailabilityView",
    "ConfirmationDecision",
    "DaySlots",
    "DecisionAction",
    "RescheduleChoice",
    "RescheduleState",
    "SlotGenerator",
    "TimeSlot",
    "generate_slots",
]
