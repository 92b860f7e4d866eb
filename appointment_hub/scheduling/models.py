"""Pydantic models for the scheduling service."""

import re
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def validate_hhmm(value: str) -> str:
    """Check a wall-clock time is written as zero-padded HH:MM."""
    if not _TIME_RE.match(value):
        raise ValueError(f"Time must be HH:MM, got {value!r}")
    return value


class AppointmentStatus(str, Enum):
    """Appointment lifecycle statuses."""

    UPCOMING = "upcoming"
    CONFIRMED = "confirmed"
    PENDING = "pending"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


# Statuses that may still be cancelled, rescheduled or confirmed.
OPEN_STATUSES = frozenset(
    {AppointmentStatus.UPCOMING, AppointmentStatus.CONFIRMED, AppointmentStatus.PENDING}
)


class Appointment(BaseModel):
    """A booked appointment."""

    id: str
    provider_id: str
    customer_id: str
    date: date
    time: str
    status: AppointmentStatus = AppointmentStatus.UPCOMING
    cancel_reason: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("time")
    @classmethod
    def _hhmm(cls, v: str) -> str:
        return validate_hhmm(v)

    @property
    def blocks_slot(self) -> bool:
        return self.status != AppointmentStatus.CANCELLED

    @property
    def slot_key(self) -> tuple[str, date, str]:
        return (self.provider_id, self.date, self.time)


class TimeSlot(BaseModel):
    """A single bookable 30-minute position."""

    date: date
    time: str
    available: bool = True


class DaySlots(BaseModel):
    """One day of the booking horizon."""

    date: date
    day_of_week: str = Field(description="Short weekday label, e.g. 'Mon'")
    day_number: int
    month: str = Field(description="Short month label, e.g. 'Jun'")
    slots: list[TimeSlot] = []

    @property
    def available_count(self) -> int:
        return sum(1 for s in self.slots if s.available)


class RescheduleChoice(str, Enum):
    """Which option the customer picked on a reschedule request."""

    SUGGESTED = "suggested"
    ALTERNATIVE = "alternative"


class DecisionAction(str, Enum):
    CONFIRMED = "confirmed"
    CHOSE_ALTERNATIVE = "chose_alternative"


class RescheduleState(str, Enum):
    """Lifecycle of a single reschedule request."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    ALTERNATIVE_CHOSEN = "alternative_chosen"


class ConfirmationDecision(BaseModel):
    """Terminal outcome of a customer's reschedule confirmation."""

    action: DecisionAction
    new_date: date
    new_time: str
    remaining_slots: int
    reason: Optional[str] = None

    @field_validator("new_time")
    @classmethod
    def _hhmm(cls, v: str) -> str:
        return validate_hhmm(v)

    @model_validator(mode="after")
    def _reason_for_alternative(self) -> "ConfirmationDecision":
        if self.action == DecisionAction.CHOSE_ALTERNATIVE and not self.reason:
            raise ValueError("reason is required when choosing an alternative time")
        return self

    @property
    def state(self) -> RescheduleState:
        if self.action == DecisionAction.CONFIRMED:
            return RescheduleState.CONFIRMED
        return RescheduleState.ALTERNATIVE_CHOSEN


def hhmm_to_minutes(value: str) -> int:
    hour, minute = value.split(":")
    return int(hour) * 60 + int(minute)


# Provider-published blocks allowed on one date.
MAX_BLOCKS_PER_DAY = 15


class AvailabilityBlock(BaseModel):
    """A window on one date during which a provider takes bookings.

    A provider with no blocks is bookable across the whole default grid. Once
    any block exists, only grid slots that fit inside a block are offered.
    """

    id: str
    provider_id: str
    date: date
    start_time: str
    end_time: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("start_time", "end_time")
    @classmethod
    def _hhmm(cls, v: str) -> str:
        return validate_hhmm(v)

    @model_validator(mode="after")
    def _ordered(self) -> "AvailabilityBlock":
        if self.start_time >= self.end_time:
            raise ValueError("Start time must be before end time")
        return self

    def fits(self, time: str, slot_minutes: int) -> bool:
        """Whether a slot starting at *time* lies entirely inside the block."""
        start = hhmm_to_minutes(time)
        return (
            hhmm_to_minutes(self.start_time) <= start
            and start + slot_minutes <= hhmm_to_minutes(self.end_time)
        )

    def overlaps(self, other: "AvailabilityBlock") -> bool:
        return (
            self.date == other.date
            and self.start_time < other.end_time
            and other.start_time < self.end_time
        )
