"""Notification variants, discriminated on ``type``."""

import uuid
from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator

from appointment_hub.scheduling.models import ConfirmationDecision, validate_hhmm


class Audience(str, Enum):
    """Which inbox a notification belongs to."""

    CUSTOMER = "customer"
    PROVIDER = "provider"


class NotificationType(str, Enum):
    APPOINTMENT_RESCHEDULED = "appointment_rescheduled"
    RESCHEDULE_CONFIRMED = "reschedule_confirmed"
    BOOKING = "booking"
    CANCELLATION = "cancellation"
    APPOINTMENT_COMPLETED = "appointment_completed"
    INFO = "info"


def _new_id() -> str:
    return uuid.uuid4().hex


class BaseNotification(BaseModel):
    """Fields shared by every notification."""

    id: str = Field(default_factory=_new_id)
    audience: Audience
    recipient_id: str
    title: str
    message: str
    read: bool = False
    icon: Optional[str] = None
    priority: Literal["low", "normal", "high"] = "normal"
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class RescheduleRequestNotification(BaseNotification):
    """Provider proposed a new time; the customer must confirm or pick another."""

    type: Literal["appointment_rescheduled"] = "appointment_rescheduled"
    audience: Audience = Audience.CUSTOMER
    provider_id: str
    appointment_id: Optional[str] = None
    old_date: date
    old_time: str
    new_date: date
    new_time: str
    provider_name: str = ""
    provider_emoji: str = ""
    action_required: bool = True
    icon: Optional[str] = "📅"
    priority: Literal["low", "normal", "high"] = "high"

    @field_validator("old_time", "new_time")
    @classmethod
    def _hhmm(cls, v: str) -> str:
        return validate_hhmm(v)


class RescheduleConfirmedNotification(BaseNotification):
    """Customer's answer to a reschedule request, sent to the provider."""

    type: Literal["reschedule_confirmed"] = "reschedule_confirmed"
    audience: Audience = Audience.PROVIDER
    decision: ConfirmationDecision
    appointment_id: Optional[str] = None
    icon: Optional[str] = "✅"
    priority: Literal["low", "normal", "high"] = "high"


class BookingNotification(BaseNotification):
    type: Literal["booking"] = "booking"
    audience: Audience = Audience.PROVIDER
    appointment_id: str
    customer_id: str
    date: date
    time: str


class CancellationNotification(BaseNotification):
    type: Literal["cancellation"] = "cancellation"
    appointment_id: str
    date: date
    time: str
    reason: Optional[str] = None


class AppointmentCompletedNotification(BaseNotification):
    type: Literal["appointment_completed"] = "appointment_completed"
    audience: Audience = Audience.CUSTOMER
    appointment_id: str
    provider_id: str


class InfoNotification(BaseNotification):
    type: Literal["info"] = "info"


Notification = Annotated[
    Union[
        RescheduleRequestNotification,
        RescheduleConfirmedNotification,
        BookingNotification,
        CancellationNotification,
        AppointmentCompletedNotification,
        InfoNotification,
    ],
    Field(discriminator="type"),
]

notification_adapter: TypeAdapter[Notification] = TypeAdapter(Notification)


def parse_notification(data: dict) -> Notification:
    """Validate a raw dict into the matching notification variant."""
    return notification_adapter.validate_python(data)
