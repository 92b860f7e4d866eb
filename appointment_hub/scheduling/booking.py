"""Booking, cancellation and completion of appointments."""

import logging
import time as _time
import uuid
from datetime import date
from typing import Callable, Optional

from appointment_hub.core.stores import AppointmentStore, AvailabilityStore, NotificationStore
from appointment_hub.errors import NotFoundError, RescheduleStateError, ValidationError
from appointment_hub.notifications.models import (
    AppointmentCompletedNotification,
    Audience,
    BookingNotification,
    CancellationNotification,
)
from appointment_hub.observability import BookingEventLogger, EventType, get_event_logger
from appointment_hub.scheduling.models import OPEN_STATUSES, Appointment, AppointmentStatus
from appointment_hub.scheduling.reschedule import close_open_requests
from appointment_hub.scheduling.slots import AvailabilityView, SlotGenerator

logger = logging.getLogger(__name__)


class BookingService:
    """Creates and closes appointments and tells the other party."""

    def __init__(
        self,
        appointments: AppointmentStore,
        notifications: NotificationStore,
        generator: Optional[SlotGenerator] = None,
        events: Optional[BookingEventLogger] = None,
        clock: Callable[[], date] = date.today,
        blocks: Optional[AvailabilityStore] = None,
    ) -> None:
        self.appointments = appointments
        self.notifications = notifications
        self.blocks = blocks
        self.generator = generator or SlotGenerator.from_settings()
        self.events = events or get_event_logger()
        self.clock = clock

    async def availability(
        self, provider_id: str, reference_date: Optional[date] = None
    ) -> AvailabilityView:
        """Current availability of *provider_id* over the horizon."""
        started = _time.time()
        reference_date = reference_date or self.clock()
        snapshot = await self.appointments.fetch_appointments(provider_id)
        view = self.generator.view(
            reference_date, provider_id, snapshot, blocks=await self._blocks(provider_id)
        )
        self.events.log_slots(
            provider_id=provider_id,
            reference_date=reference_date,
            days=len(view.days),
            total_available=view.total_available(),
            duration_ms=(_time.time() - started) * 1000,
        )
        return view

    async def _blocks(self, provider_id: str) -> list:
        if self.blocks is None:
            return []
        return await self.blocks.list_blocks(provider_id)

    async def _require(self, appointment_id: str) -> Appointment:
        appt = await self.appointments.get(appointment_id)
        if appt is None:
            raise NotFoundError(f"Appointment {appointment_id} not found")
        return appt

    async def book(self, provider_id: str, customer_id: str, day: date, time: str) -> Appointment:
        """Book a free slot. Raises SlotConflictError when it is taken."""
        if not self.generator.on_grid(self.clock(), day, time):
            raise ValidationError(f"{day.isoformat()} {time} is not a bookable slot")
        blocks = await self._blocks(provider_id)
        if not self.generator.within_blocks(provider_id, blocks, day, time):
            raise ValidationError(
                f"Provider {provider_id} is not available on {day.isoformat()} at {time}"
            )

        appt = await self.appointments.add(
            Appointment(
                id=uuid.uuid4().hex,
                provider_id=provider_id,
                customer_id=customer_id,
                date=day,
                time=time,
                status=AppointmentStatus.CONFIRMED,
            )
        )
        await self.notifications.prepend(
            BookingNotification(
                recipient_id=provider_id,
                appointment_id=appt.id,
                customer_id=customer_id,
                date=day,
                time=time,
                title="New booking",
                message=f"Customer {customer_id} booked an appointment on {day.isoformat()} at {time}",
                icon="🗓️",
            )
        )
        self.events.log_appointment(
            EventType.BOOKING_CREATED,
            appt.id,
            provider_id=provider_id,
            customer_id=customer_id,
            date=day,
            time=time,
        )
        logger.info(f"Booked appointment {appt.id}: provider={provider_id} {day} {time}")
        return appt

    async def cancel(
        self,
        appointment_id: str,
        reason: Optional[str] = None,
        cancelled_by: Audience = Audience.CUSTOMER,
    ) -> Appointment:
        """Cancel an open appointment and notify the other side."""
        appt = await self._require(appointment_id)
        if appt.status not in OPEN_STATUSES:
            raise RescheduleStateError(
                f"Appointment {appointment_id} is {appt.status.value} and cannot be cancelled"
            )
        appt = await self.appointments.update_status(
            appointment_id, AppointmentStatus.CANCELLED, cancel_reason=reason
        )
        await close_open_requests(self.notifications, appt.id, appt.customer_id)

        if cancelled_by == Audience.CUSTOMER:
            audience, recipient = Audience.PROVIDER, appt.provider_id
            title = "Booking cancelled"
            message = (
                f"Customer {appt.customer_id} cancelled appointment on "
                f"{appt.date.isoformat()} at {appt.time}"
            )
        else:
            audience, recipient = Audience.CUSTOMER, appt.customer_id
            title = "Appointment Cancelled"
            message = (
                f"Your appointment on {appt.date.isoformat()} at {appt.time} has been cancelled."
            )
        await self.notifications.prepend(
            CancellationNotification(
                audience=audience,
                recipient_id=recipient,
                appointment_id=appt.id,
                date=appt.date,
                time=appt.time,
                reason=reason,
                title=title,
                message=message,
                icon="❌",
            )
        )
        self.events.log_appointment(
            EventType.BOOKING_CANCELLED,
            appt.id,
            provider_id=appt.provider_id,
            customer_id=appt.customer_id,
            date=appt.date,
            time=appt.time,
            cancelled_by=cancelled_by.value,
        )
        return appt

    async def complete(self, appointment_id: str) -> Appointment:
        """Mark an appointment completed and ask the customer for feedback."""
        appt = await self._require(appointment_id)
        if appt.status not in OPEN_STATUSES:
            raise RescheduleStateError(
                f"Appointment {appointment_id} is {appt.status.value} and cannot be completed"
            )
        appt = await self.appointments.update_status(appointment_id, AppointmentStatus.COMPLETED)
        await close_open_requests(self.notifications, appt.id, appt.customer_id)
        await self.notifications.prepend(
            AppointmentCompletedNotification(
                recipient_id=appt.customer_id,
                appointment_id=appt.id,
                provider_id=appt.provider_id,
                title="Appointment Completed",
                message=(
                    f"Your appointment on {appt.date.isoformat()} at {appt.time} "
                    "is marked as complete. Please share your feedback."
                ),
            )
        )
        self.events.log_appointment(
            EventType.BOOKING_COMPLETED,
            appt.id,
            provider_id=appt.provider_id,
            customer_id=appt.customer_id,
        )
        return appt
