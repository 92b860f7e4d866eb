"""Provider reschedule proposals and customer confirmations."""

import logging
from datetime import date
from typing import Callable, Optional

from pydantic import BaseModel

from appointment_hub.core.stores import AppointmentStore, AvailabilityStore, NotificationStore
from appointment_hub.errors import NotFoundError, RescheduleStateError, ValidationError
from appointment_hub.notifications.models import (
    Audience,
    NotificationType,
    RescheduleConfirmedNotification,
    RescheduleRequestNotification,
)
from appointment_hub.observability import BookingEventLogger, get_event_logger
from appointment_hub.scheduling.models import (
    OPEN_STATUSES,
    AppointmentStatus,
    ConfirmationDecision,
    DecisionAction,
    RescheduleChoice,
)
from appointment_hub.scheduling.slots import SlotGenerator

logger = logging.getLogger(__name__)

ALTERNATIVE_REASON = "Customer selected alternative time"


async def close_open_requests(
    notifications: NotificationStore, appointment_id: str, recipient_id: Optional[str] = None
) -> int:
    """Withdraw every unanswered reschedule request for *appointment_id*."""
    closed = 0
    for n in await notifications.read_notifications(Audience.CUSTOMER, recipient_id):
        if (
            n.type == NotificationType.APPOINTMENT_RESCHEDULED
            and n.appointment_id == appointment_id
            and n.action_required
        ):
            await notifications.update_flags(Audience.CUSTOMER, n.id, action_required=False)
            closed += 1
    if closed:
        logger.info(f"Closed {closed} open reschedule request(s) for appointment {appointment_id}")
    return closed


class RescheduleProposal(BaseModel):
    """Result of a provider proposing a new time."""

    notification: RescheduleRequestNotification
    remaining_slots: int


class RescheduleResolver:
    """Drives a reschedule request from proposal to its terminal decision.

    A request starts ``pending`` when the provider proposes a time and ends
    either ``confirmed`` (customer accepts the suggestion) or
    ``alternative_chosen`` (customer picks another free slot). Both stores
    are injected; nothing here reads ambient state. A newer proposal, a
    cancellation or a completion withdraws any request still open for the
    same appointment.
    """

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

    async def _blocks(self, provider_id: str) -> list:
        if self.blocks is None:
            return []
        return await self.blocks.list_blocks(provider_id)

    # ------------------------------------------------------------------
    # Provider side
    # ------------------------------------------------------------------

    async def propose(
        self,
        appointment_id: str,
        new_date: date,
        new_time: str,
        provider_name: str = "",
        provider_emoji: str = "",
    ) -> RescheduleProposal:
        """Move an appointment to ``pending`` and ask the customer to confirm."""
        appt = await self.appointments.get(appointment_id)
        if appt is None:
            raise NotFoundError(f"Appointment {appointment_id} not found")
        if appt.status not in OPEN_STATUSES:
            raise RescheduleStateError(
                f"Appointment {appointment_id} is {appt.status.value} and cannot be rescheduled"
            )

        # Both the provider's and the customer's calendars must be free
        snapshot = await self.appointments.fetch_appointments()
        view = self.generator.view(
            self.clock(),
            appt.provider_id,
            snapshot,
            customer_id=appt.customer_id,
            exclude_appointment_id=appt.id,
            blocks=await self._blocks(appt.provider_id),
        )
        if not view.is_available(new_date, new_time):
            raise ValidationError(f"{new_date} {new_time} is not an available slot")

        await self.appointments.update_status(appt.id, AppointmentStatus.PENDING)
        await close_open_requests(self.notifications, appt.id, appt.customer_id)

        who = f"{provider_name} {provider_emoji}".strip() or "your provider"
        notification = RescheduleRequestNotification(
            recipient_id=appt.customer_id,
            provider_id=appt.provider_id,
            appointment_id=appt.id,
            old_date=appt.date,
            old_time=appt.time,
            new_date=new_date,
            new_time=new_time,
            provider_name=provider_name,
            provider_emoji=provider_emoji,
            title="Appointment Rescheduled",
            message=(
                f"Your appointment with {who} has been rescheduled to "
                f"{new_date.isoformat()} at {new_time}. Please confirm the new time."
            ),
        )
        await self.notifications.prepend(notification)

        remaining = view.total_available() - 1
        self.events.log_reschedule_proposed(
            notification_id=notification.id,
            provider_id=appt.provider_id,
            appointment_id=appt.id,
            new_date=new_date,
            new_time=new_time,
            remaining_slots=remaining,
        )
        logger.info(
            f"Reschedule proposed: appointment={appt.id} "
            f"{appt.date} {appt.time} -> {new_date} {new_time}"
        )
        return RescheduleProposal(notification=notification, remaining_slots=remaining)

    # ------------------------------------------------------------------
    # Customer side
    # ------------------------------------------------------------------

    async def load_request(self, notification_id: str) -> RescheduleRequestNotification:
        """Fetch a customer's reschedule request by id."""
        notification = await self.notifications.get(Audience.CUSTOMER, notification_id)
        if notification is None:
            raise NotFoundError(f"Notification {notification_id} not found")
        if notification.type != NotificationType.APPOINTMENT_RESCHEDULED:
            raise ValidationError(f"Notification {notification_id} is not a reschedule request")
        return notification

    async def confirm(
        self,
        notification: RescheduleRequestNotification,
        choice: RescheduleChoice,
        selected_date: Optional[date] = None,
        selected_time: Optional[str] = None,
    ) -> ConfirmationDecision:
        """Apply the customer's answer to a reschedule request.

        Raises:
            RescheduleStateError: the request was already answered or
                withdrawn, or its appointment is no longer open.
            NotFoundError: the referenced appointment does not exist.
            ValidationError: an alternative was requested without a date
                and time free for both provider and customer; nothing is
                written.
            SlotConflictError: the chosen slot was taken before the move.
            PersistenceError: a store write failed. Writes that already
                succeeded are kept.
        """
        if not notification.action_required:
            raise RescheduleStateError(f"Reschedule request {notification.id} was already answered")

        with self.events.confirmation(
            notification.id,
            notification.provider_id,
            appointment_id=notification.appointment_id,
        ) as event:
            if notification.appointment_id:
                appt = await self.appointments.get(notification.appointment_id)
                if appt is None:
                    raise NotFoundError(f"Appointment {notification.appointment_id} not found")
                if appt.status not in OPEN_STATUSES:
                    raise RescheduleStateError(
                        f"Appointment {appt.id} is {appt.status.value} and cannot be rescheduled"
                    )

            reference_date = self.clock()
            blocks = await self._blocks(notification.provider_id)
            snapshot = await self.appointments.fetch_appointments()
            view = self.generator.view(
                reference_date, notification.provider_id, snapshot, blocks=blocks
            )
            remaining = view.total_available() - 1

            if choice == RescheduleChoice.SUGGESTED:
                decision = ConfirmationDecision(
                    action=DecisionAction.CONFIRMED,
                    new_date=notification.new_date,
                    new_time=notification.new_time,
                    remaining_slots=remaining,
                )
            else:
                if selected_date is None or not selected_time:
                    raise ValidationError("Please select a date and time")
                customer_view = self.generator.view(
                    reference_date,
                    notification.provider_id,
                    snapshot,
                    customer_id=notification.recipient_id,
                    exclude_appointment_id=notification.appointment_id,
                    blocks=blocks,
                )
                if not customer_view.is_available(selected_date, selected_time):
                    raise ValidationError(
                        f"{selected_date.isoformat()} {selected_time} is not an available slot"
                    )
                decision = ConfirmationDecision(
                    action=DecisionAction.CHOSE_ALTERNATIVE,
                    new_date=selected_date,
                    new_time=selected_time,
                    remaining_slots=remaining,
                    reason=ALTERNATIVE_REASON,
                )

            if notification.appointment_id:
                await self.appointments.move(
                    notification.appointment_id,
                    decision.new_date,
                    decision.new_time,
                    status=AppointmentStatus.CONFIRMED,
                )

            await self.notifications.update_flags(
                Audience.CUSTOMER, notification.id, read=True, action_required=False
            )
            await self.notifications.prepend(self._provider_notice(notification, decision))

            event.action = decision.action.value
            event.new_date = decision.new_date
            event.new_time = decision.new_time
            event.remaining_slots = decision.remaining_slots

        logger.info(
            f"Reschedule {decision.state.value}: notification={notification.id} "
            f"{decision.new_date} {decision.new_time} remaining={decision.remaining_slots}"
        )
        return decision

    @staticmethod
    def _provider_notice(
        notification: RescheduleRequestNotification, decision: ConfirmationDecision
    ) -> RescheduleConfirmedNotification:
        confirmed = decision.action == DecisionAction.CONFIRMED
        verb = "confirmed" if confirmed else "chose alternative for"
        return RescheduleConfirmedNotification(
            recipient_id=notification.provider_id,
            appointment_id=notification.appointment_id,
            decision=decision,
            title="Appointment Reschedule " + ("Confirmed" if confirmed else "Changed"),
            message=(
                f"Customer {verb} appointment on "
                f"{decision.new_date.isoformat()} at {decision.new_time}"
            ),
        )


async def confirm_reschedule(
    resolver: RescheduleResolver,
    notification: RescheduleRequestNotification,
    choice: RescheduleChoice,
    selected_date: Optional[date] = None,
    selected_time: Optional[str] = None,
) -> ConfirmationDecision:
    """Functional entry point matching the UI contract."""
    return await resolver.confirm(notification, choice, selected_date, selected_time)
