"""Repository interfaces for appointments, availability and notifications, plus in-memory stores."""

from __future__ import annotations

import asyncio
from datetime import date, datetime, timezone
from typing import Optional, Protocol, Sequence

from appointment_hub.errors import NotFoundError, SlotConflictError
from appointment_hub.notifications.models import Audience, Notification
from appointment_hub.scheduling.models import Appointment, AppointmentStatus, AvailabilityBlock


class AppointmentStore(Protocol):
    """Read snapshots of appointments and apply slot-safe writes."""

    async def fetch_appointments(self, provider_id: Optional[str] = None) -> list[Appointment]: ...

    async def get(self, appointment_id: str) -> Optional[Appointment]: ...

    async def list(
        self,
        provider_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        status: Optional[AppointmentStatus] = None,
    ) -> list[Appointment]: ...

    async def add(self, appointment: Appointment) -> Appointment: ...

    async def move(
        self,
        appointment_id: str,
        new_date: date,
        new_time: str,
        status: AppointmentStatus = AppointmentStatus.CONFIRMED,
    ) -> Appointment: ...

    async def update_status(
        self,
        appointment_id: str,
        status: AppointmentStatus,
        cancel_reason: Optional[str] = None,
    ) -> Appointment: ...


class NotificationStore(Protocol):
    """Per-audience notification lists, most recent first."""

    async def read_notifications(
        self, audience: Audience, recipient_id: Optional[str] = None
    ) -> list[Notification]: ...

    async def write_notifications(
        self, audience: Audience, notifications: Sequence[Notification]
    ) -> None: ...

    async def get(self, audience: Audience, notification_id: str) -> Optional[Notification]: ...

    async def prepend(self, notification: Notification) -> Notification: ...

    async def update_flags(
        self,
        audience: Audience,
        notification_id: str,
        read: Optional[bool] = None,
        action_required: Optional[bool] = None,
    ) -> Notification: ...

    async def mark_all_read(self, audience: Audience, recipient_id: str) -> int: ...

    async def delete(self, audience: Audience, notification_id: str) -> Notification: ...

    async def clear(self, audience: Audience, recipient_id: str) -> int: ...


class AvailabilityStore(Protocol):
    """Provider-published availability blocks."""

    async def list_blocks(
        self, provider_id: Optional[str] = None, day: Optional[date] = None
    ) -> list[AvailabilityBlock]: ...

    async def get_block(self, block_id: str) -> Optional[AvailabilityBlock]: ...

    async def add_block(self, block: AvailabilityBlock) -> AvailabilityBlock: ...

    async def update_block(self, block: AvailabilityBlock) -> AvailabilityBlock: ...

    async def delete_block(self, block_id: str) -> AvailabilityBlock: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryAppointmentStore:
    """Dict-backed appointment store; slot checks run under one lock."""

    def __init__(self, appointments: Optional[Sequence[Appointment]] = None):
        self._items: dict[str, Appointment] = {}
        self._lock = asyncio.Lock()
        for appt in appointments or []:
            self._items[appt.id] = appt.model_copy()

    def _occupant(
        self, provider_id: str, day: date, time: str, ignore_id: Optional[str] = None
    ) -> Optional[Appointment]:
        for appt in self._items.values():
            if appt.id == ignore_id or not appt.blocks_slot:
                continue
            if appt.slot_key == (provider_id, day, time):
                return appt
        return None

    async def fetch_appointments(self, provider_id: Optional[str] = None) -> list[Appointment]:
        return [
            a.model_copy()
            for a in self._items.values()
            if provider_id is None or a.provider_id == provider_id
        ]

    async def get(self, appointment_id: str) -> Optional[Appointment]:
        appt = self._items.get(appointment_id)
        return appt.model_copy() if appt else None

    async def list(
        self,
        provider_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        status: Optional[AppointmentStatus] = None,
    ) -> list[Appointment]:
        items = [
            a
            for a in self._items.values()
            if (provider_id is None or a.provider_id == provider_id)
            and (customer_id is None or a.customer_id == customer_id)
            and (status is None or a.status == status)
        ]
        items.sort(key=lambda a: (a.date, a.time), reverse=True)
        return [a.model_copy() for a in items]

    async def add(self, appointment: Appointment) -> Appointment:
        async with self._lock:
            if appointment.blocks_slot and self._occupant(*appointment.slot_key):
                raise SlotConflictError(*appointment.slot_key)
            self._items[appointment.id] = appointment.model_copy()
        return appointment.model_copy()

    async def move(
        self,
        appointment_id: str,
        new_date: date,
        new_time: str,
        status: AppointmentStatus = AppointmentStatus.CONFIRMED,
    ) -> Appointment:
        async with self._lock:
            appt = self._items.get(appointment_id)
            if appt is None:
                raise NotFoundError(f"Appointment {appointment_id} not found")
            if self._occupant(appt.provider_id, new_date, new_time, ignore_id=appt.id):
                raise SlotConflictError(appt.provider_id, new_date, new_time)
            updated = appt.model_copy(
                update={"date": new_date, "time": new_time, "status": status, "updated_at": _utcnow()}
            )
            self._items[appointment_id] = updated
        return updated.model_copy()

    async def update_status(
        self,
        appointment_id: str,
        status: AppointmentStatus,
        cancel_reason: Optional[str] = None,
    ) -> Appointment:
        async with self._lock:
            appt = self._items.get(appointment_id)
            if appt is None:
                raise NotFoundError(f"Appointment {appointment_id} not found")
            changes: dict = {"status": status, "updated_at": _utcnow()}
            if cancel_reason is not None:
                changes["cancel_reason"] = cancel_reason
            updated = appt.model_copy(update=changes)
            self._items[appointment_id] = updated
        return updated.model_copy()


class InMemoryNotificationStore:
    """Two lists (customer, provider) kept most-recent-first."""

    def __init__(self) -> None:
        self._lists: dict[Audience, list[Notification]] = {
            Audience.CUSTOMER: [],
            Audience.PROVIDER: [],
        }

    def _find(self, audience: Audience, notification_id: str) -> int:
        for i, n in enumerate(self._lists[audience]):
            if n.id == notification_id:
                return i
        raise NotFoundError(f"Notification {notification_id} not found")

    async def read_notifications(
        self, audience: Audience, recipient_id: Optional[str] = None
    ) -> list[Notification]:
        return [
            n.model_copy()
            for n in self._lists[audience]
            if recipient_id is None or n.recipient_id == recipient_id
        ]

    async def write_notifications(
        self, audience: Audience, notifications: Sequence[Notification]
    ) -> None:
        self._lists[audience] = [n.model_copy() for n in notifications]

    async def get(self, audience: Audience, notification_id: str) -> Optional[Notification]:
        for n in self._lists[audience]:
            if n.id == notification_id:
                return n.model_copy()
        return None

    async def prepend(self, notification: Notification) -> Notification:
        self._lists[notification.audience].insert(0, notification.model_copy())
        return notification

    async def update_flags(
        self,
        audience: Audience,
        notification_id: str,
        read: Optional[bool] = None,
        action_required: Optional[bool] = None,
    ) -> Notification:
        idx = self._find(audience, notification_id)
        current = self._lists[audience][idx]
        changes: dict = {}
        if read is not None:
            changes["read"] = read
        if action_required is not None and hasattr(current, "action_required"):
            changes["action_required"] = action_required
        updated = current.model_copy(update=changes)
        self._lists[audience][idx] = updated
        return updated.model_copy()

    async def mark_all_read(self, audience: Audience, recipient_id: str) -> int:
        count = 0
        items = self._lists[audience]
        for i, n in enumerate(items):
            if n.recipient_id == recipient_id and not n.read:
                items[i] = n.model_copy(update={"read": True})
                count += 1
        return count

    async def delete(self, audience: Audience, notification_id: str) -> Notification:
        idx = self._find(audience, notification_id)
        return self._lists[audience].pop(idx)

    async def clear(self, audience: Audience, recipient_id: str) -> int:
        before = len(self._lists[audience])
        self._lists[audience] = [
            n for n in self._lists[audience] if n.recipient_id != recipient_id
        ]
        return before - len(self._lists[audience])


class InMemoryAvailabilityStore:
    """Dict-backed availability blocks, listed by date then start time."""

    def __init__(self, blocks: Optional[Sequence[AvailabilityBlock]] = None):
        self._items: dict[str, AvailabilityBlock] = {b.id: b.model_copy() for b in blocks or []}

    async def list_blocks(
        self, provider_id: Optional[str] = None, day: Optional[date] = None
    ) -> list[AvailabilityBlock]:
        items = [
            b
            for b in self._items.values()
            if (provider_id is None or b.provider_id == provider_id)
            and (day is None or b.date == day)
        ]
        items.sort(key=lambda b: (b.date, b.start_time))
        return [b.model_copy() for b in items]

    async def get_block(self, block_id: str) -> Optional[AvailabilityBlock]:
        block = self._items.get(block_id)
        return block.model_copy() if block else None

    async def add_block(self, block: AvailabilityBlock) -> AvailabilityBlock:
        self._items[block.id] = block.model_copy()
        return block.model_copy()

    async def update_block(self, block: AvailabilityBlock) -> AvailabilityBlock:
        if block.id not in self._items:
            raise NotFoundError(f"Availability block {block.id} not found")
        updated = block.model_copy(update={"updated_at": _utcnow()})
        self._items[block.id] = updated
        return updated.model_copy()

    async def delete_block(self, block_id: str) -> AvailabilityBlock:
        block = self._items.pop(block_id, None)
        if block is None:
            raise NotFoundError(f"Availability block {block_id} not found")
        return block
