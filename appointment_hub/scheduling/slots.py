"""Slot generation and availability aggregation."""

from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from appointment_hub.config import Settings, get_settings
from appointment_hub.scheduling.models import (
    Appointment,
    AvailabilityBlock,
    DaySlots,
    TimeSlot,
)


class SlotGenerator:
    """Builds the fixed booking grid over the forward horizon.

    The grid is ``horizon_days`` consecutive dates starting the day after the
    reference date, each with slots from ``start_hour`` (inclusive) to
    ``end_hour`` (exclusive) every ``slot_minutes``.
    """

    def __init__(
        self,
        horizon_days: int = 30,
        start_hour: int = 9,
        end_hour: int = 17,
        slot_minutes: int = 30,
    ) -> None:
        self.horizon_days = horizon_days
        self.start_hour = start_hour
        self.end_hour = end_hour
        self.slot_minutes = slot_minutes

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "SlotGenerator":
        settings = settings or get_settings()
        return cls(
            horizon_days=settings.slot_horizon_days,
            start_hour=settings.slot_day_start_hour,
            end_hour=settings.slot_day_end_hour,
            slot_minutes=settings.slot_minutes,
        )

    # ------------------------------------------------------------------
    # Grid
    # ------------------------------------------------------------------

    def day_times(self) -> list[str]:
        """Return the HH:MM labels of one day, in order."""
        times: list[str] = []
        minutes = self.start_hour * 60
        end = self.end_hour * 60
        while minutes + self.slot_minutes <= end:
            times.append(f"{minutes // 60:02d}:{minutes % 60:02d}")
            minutes += self.slot_minutes
        return times

    def horizon(self, reference_date: date) -> list[date]:
        """Dates covered by the grid for *reference_date*."""
        return [reference_date + timedelta(days=i) for i in range(1, self.horizon_days + 1)]

    def on_grid(self, reference_date: date, day: date, time: str) -> bool:
        """Whether (*day*, *time*) is a bookable position for *reference_date*."""
        first = reference_date + timedelta(days=1)
        last = reference_date + timedelta(days=self.horizon_days)
        return first <= day <= last and time in self.day_times()

    def within_blocks(
        self,
        provider_id: str,
        blocks: Optional[Iterable[AvailabilityBlock]],
        day: date,
        time: str,
    ) -> bool:
        """Whether the provider's published blocks allow (*day*, *time*).

        A provider without blocks is open across the whole grid.
        """
        own = [b for b in blocks or () if b.provider_id == provider_id]
        if not own:
            return True
        return any(b.date == day and b.fits(time, self.slot_minutes) for b in own)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate(
        self,
        reference_date: date,
        provider_id: str,
        appointments: Iterable[Appointment],
        customer_id: Optional[str] = None,
        exclude_appointment_id: Optional[str] = None,
        blocks: Optional[Iterable[AvailabilityBlock]] = None,
    ) -> list[DaySlots]:
        """Generate the provider's slots, marking occupied ones unavailable.

        A slot is occupied when a non-cancelled appointment for the provider
        sits on it. When *customer_id* is given the customer's own
        non-cancelled appointments also occupy their positions.
        *exclude_appointment_id* is ignored in both checks. When the provider
        has published *blocks*, slots outside every block are unavailable.
        """
        booked: set[tuple[date, str]] = set()
        for appt in appointments:
            if not appt.blocks_slot or appt.id == exclude_appointment_id:
                continue
            if appt.provider_id == provider_id:
                booked.add((appt.date, appt.time))
            elif customer_id is not None and appt.customer_id == customer_id:
                booked.add((appt.date, appt.time))

        own_blocks = [b for b in blocks or () if b.provider_id == provider_id]
        if own_blocks:
            open_slots = {
                (b.date, t)
                for b in own_blocks
                for t in self.day_times()
                if b.fits(t, self.slot_minutes)
            }
            for day in self.horizon(reference_date):
                booked.update((day, t) for t in self.day_times() if (day, t) not in open_slots)

        times = self.day_times()
        days: list[DaySlots] = []
        for day in self.horizon(reference_date):
            days.append(
                DaySlots(
                    date=day,
                    day_of_week=day.strftime("%a"),
                    day_number=day.day,
                    month=day.strftime("%b"),
                    slots=[
                        TimeSlot(date=day, time=t, available=(day, t) not in booked)
                        for t in times
                    ],
                )
            )
        return days

    def view(
        self,
        reference_date: date,
        provider_id: str,
        appointments: Iterable[Appointment],
        customer_id: Optional[str] = None,
        exclude_appointment_id: Optional[str] = None,
        blocks: Optional[Iterable[AvailabilityBlock]] = None,
    ) -> "AvailabilityView":
        """Generate slots and wrap them for aggregate queries."""
        days = self.generate(
            reference_date,
            provider_id,
            appointments,
            customer_id=customer_id,
            exclude_appointment_id=exclude_appointment_id,
            blocks=blocks,
        )
        return AvailabilityView(provider_id=provider_id, days=days)


class AvailabilityView:
    """Read-only aggregate queries over one generated horizon."""

    def __init__(self, provider_id: str, days: list[DaySlots]) -> None:
        self.provider_id = provider_id
        self.days = days
        self._by_date = {d.date: d for d in days}

    def day(self, day: date) -> Optional[DaySlots]:
        return self._by_date.get(day)

    def times_for_date(self, day: date) -> list[str]:
        """Available times for *day*; empty outside the horizon or when full."""
        slots = self._by_date.get(day)
        if slots is None:
            return []
        return [s.time for s in slots.slots if s.available]

    def is_available(self, day: date, time: str) -> bool:
        return time in self.times_for_date(day)

    def total_available(self) -> int:
        """Count of free slots across the whole horizon."""
        return sum(d.available_count for d in self.days)

    def dates_with_availability(self) -> list[date]:
        return [d.date for d in self.days if d.available_count > 0]

    def first_available(self) -> Optional[datetime]:
        """Earliest free slot as a naive datetime, if any."""
        for d in self.days:
            for s in d.slots:
                if s.available:
                    hour, minute = (int(p) for p in s.time.split(":"))
                    return datetime(d.date.year, d.date.month, d.date.day, hour, minute)
        return None


def generate_slots(
    reference_date: date,
    provider_id: str,
    appointments: Iterable[Appointment],
    generator: Optional[SlotGenerator] = None,
) -> list[DaySlots]:
    """Generate the default 30-day grid for *provider_id*."""
    generator = generator or SlotGenerator()
    return generator.generate(reference_date, provider_id, appointments)
