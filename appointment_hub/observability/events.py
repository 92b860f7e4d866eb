"""Structured booking events for telemetry."""

import datetime as dt
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Types of booking events."""

    SLOTS_GENERATED = "slots_generated"
    BOOKING_CREATED = "booking_created"
    BOOKING_CANCELLED = "booking_cancelled"
    BOOKING_COMPLETED = "booking_completed"
    AVAILABILITY_CREATED = "availability_created"
    AVAILABILITY_UPDATED = "availability_updated"
    AVAILABILITY_DELETED = "availability_deleted"
    RESCHEDULE_PROPOSED = "reschedule_proposed"
    RESCHEDULE_CONFIRMED = "reschedule_confirmed"
    RESCHEDULE_REJECTED = "reschedule_rejected"
    RESCHEDULE_ERROR = "reschedule_error"
    PERSISTENCE_ERROR = "persistence_error"


class BookingEvent(BaseModel):
    """Base class for all booking events."""

    event_type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    request_id: Optional[str] = None
    duration_ms: Optional[float] = None
    provider_id: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class SlotsEvent(BookingEvent):
    """Availability was computed for a provider."""

    event_type: EventType = EventType.SLOTS_GENERATED
    reference_date: date
    days: int
    total_available: int


class AppointmentEvent(BookingEvent):
    """An appointment was created, cancelled or completed."""

    appointment_id: str
    customer_id: Optional[str] = None
    date: Optional[dt.date] = None
    time: Optional[str] = None


class AvailabilityEvent(BookingEvent):
    """A provider published, changed or withdrew an availability block."""

    block_id: str
    date: Optional[dt.date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None


class RescheduleEvent(BookingEvent):
    """A reschedule was proposed or answered."""

    notification_id: str
    appointment_id: Optional[str] = None
    action: Optional[str] = None
    new_date: Optional[date] = None
    new_time: Optional[str] = None
    remaining_slots: Optional[int] = None

    # Error fields (populated on error)
    error_type: Optional[str] = None
    error_message: Optional[str] = None
