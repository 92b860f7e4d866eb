"""SQL-backed stores for appointments, availability and notifications."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import Optional, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from appointment_hub.core.models import AppointmentDB, AvailabilityBlockDB, NotificationDB
from appointment_hub.errors import NotFoundError, PersistenceError, SlotConflictError
from appointment_hub.notifications.models import (
    Audience,
    Notification,
    NotificationType,
    parse_notification,
)
from appointment_hub.scheduling.models import Appointment, AppointmentStatus, AvailabilityBlock

logger = logging.getLogger(__name__)


def _appt_to_pydantic(row: AppointmentDB) -> Appointment:
    return Appointment(
        id=row.id,
        provider_id=row.provider_id,
        customer_id=row.customer_id,
        date=row.date,
        time=row.time,
        status=AppointmentStatus(row.status),
        cancel_reason=row.cancel_reason,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _notification_from_row(row: NotificationDB) -> Notification:
    data = dict(row.payload)
    data["read"] = row.read
    if row.type == NotificationType.APPOINTMENT_RESCHEDULED.value:
        data["action_required"] = row.action_required
    return parse_notification(data)


def _notification_to_row(notification: Notification) -> NotificationDB:
    return NotificationDB(
        id=notification.id,
        audience=notification.audience.value,
        recipient_id=notification.recipient_id,
        type=notification.type,
        read=notification.read,
        action_required=getattr(notification, "action_required", False),
        payload=notification.model_dump(mode="json"),
        created_at=notification.created_at,
    )


def _block_to_pydantic(row: AvailabilityBlockDB) -> AvailabilityBlock:
    return AvailabilityBlock(
        id=row.id,
        provider_id=row.provider_id,
        date=row.date,
        start_time=row.start_time,
        end_time=row.end_time,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class _SqlStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        """Run a unit of work, surfacing driver failures as PersistenceError."""
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as e:
            logger.error(f"{type(self).__name__} failed: {e}")
            raise PersistenceError(str(e)) from e


class SqlAppointmentStore(_SqlStore):
    async def fetch_appointments(self, provider_id: Optional[str] = None) -> list[Appointment]:
        stmt = select(AppointmentDB)
        if provider_id is not None:
            stmt = stmt.where(AppointmentDB.provider_id == provider_id)
        async with self._transaction() as session:
            result = await session.execute(stmt)
            return [_appt_to_pydantic(r) for r in result.scalars().all()]

    async def get(self, appointment_id: str) -> Optional[Appointment]:
        async with self._transaction() as session:
            row = await session.get(AppointmentDB, appointment_id)
            return _appt_to_pydantic(row) if row else None

    async def list(
        self,
        provider_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        status: Optional[AppointmentStatus] = None,
    ) -> list[Appointment]:
        stmt = select(AppointmentDB)
        if provider_id is not None:
            stmt = stmt.where(AppointmentDB.provider_id == provider_id)
        if customer_id is not None:
            stmt = stmt.where(AppointmentDB.customer_id == customer_id)
        if status is not None:
            stmt = stmt.where(AppointmentDB.status == status.value)
        stmt = stmt.order_by(AppointmentDB.date.desc(), AppointmentDB.time.desc())
        async with self._transaction() as session:
            result = await session.execute(stmt)
            return [_appt_to_pydantic(r) for r in result.scalars().all()]

    @staticmethod
    async def _occupied(
        session: AsyncSession,
        provider_id: str,
        day: date,
        time: str,
        ignore_id: Optional[str] = None,
    ) -> bool:
        stmt = select(AppointmentDB.id).where(
            AppointmentDB.provider_id == provider_id,
            AppointmentDB.date == day,
            AppointmentDB.time == time,
            AppointmentDB.status != AppointmentStatus.CANCELLED.value,
        )
        if ignore_id is not None:
            stmt = stmt.where(AppointmentDB.id != ignore_id)
        result = await session.execute(stmt.limit(1))
        return result.scalar_one_or_none() is not None

    async def add(self, appointment: Appointment) -> Appointment:
        async with self._transaction() as session:
            if appointment.blocks_slot and await self._occupied(session, *appointment.slot_key):
                raise SlotConflictError(*appointment.slot_key)
            row = AppointmentDB(
                id=appointment.id,
                provider_id=appointment.provider_id,
                customer_id=appointment.customer_id,
                date=appointment.date,
                time=appointment.time,
                status=appointment.status.value,
                cancel_reason=appointment.cancel_reason,
                created_at=appointment.created_at,
                updated_at=appointment.updated_at,
            )
            session.add(row)
            try:
                await session.flush()
            except IntegrityError as e:
                raise SlotConflictError(*appointment.slot_key) from e
            return _appt_to_pydantic(row)

    async def move(
        self,
        appointment_id: str,
        new_date: date,
        new_time: str,
        status: AppointmentStatus = AppointmentStatus.CONFIRMED,
    ) -> Appointment:
        async with self._transaction() as session:
            row = await session.get(AppointmentDB, appointment_id)
            if row is None:
                raise NotFoundError(f"Appointment {appointment_id} not found")
            if await self._occupied(session, row.provider_id, new_date, new_time, ignore_id=row.id):
                raise SlotConflictError(row.provider_id, new_date, new_time)
            row.date = new_date
            row.time = new_time
            row.status = status.value
            row.updated_at = datetime.now(timezone.utc)
            try:
                await session.flush()
            except IntegrityError as e:
                raise SlotConflictError(row.provider_id, new_date, new_time) from e
            return _appt_to_pydantic(row)

    async def update_status(
        self,
        appointment_id: str,
        status: AppointmentStatus,
        cancel_reason: Optional[str] = None,
    ) -> Appointment:
        async with self._transaction() as session:
            row = await session.get(AppointmentDB, appointment_id)
            if row is None:
                raise NotFoundError(f"Appointment {appointment_id} not found")
            row.status = status.value
            if cancel_reason is not None:
                row.cancel_reason = cancel_reason
            row.updated_at = datetime.now(timezone.utc)
            await session.flush()
            return _appt_to_pydantic(row)


class SqlNotificationStore(_SqlStore):
    async def read_notifications(
        self, audience: Audience, recipient_id: Optional[str] = None
    ) -> list[Notification]:
        stmt = select(NotificationDB).where(NotificationDB.audience == audience.value)
        if recipient_id is not None:
            stmt = stmt.where(NotificationDB.recipient_id == recipient_id)
        stmt = stmt.order_by(NotificationDB.seq.desc())
        async with self._transaction() as session:
            result = await session.execute(stmt)
            return [_notification_from_row(r) for r in result.scalars().all()]

    async def write_notifications(
        self, audience: Audience, notifications: Sequence[Notification]
    ) -> None:
        async with self._transaction() as session:
            await session.execute(
                delete(NotificationDB).where(NotificationDB.audience == audience.value)
            )
            # Oldest first so the head of the list gets the highest seq
            for notification in reversed(list(notifications)):
                session.add(_notification_to_row(notification))
                await session.flush()

    async def _get_row(
        self, session: AsyncSession, audience: Audience, notification_id: str
    ) -> NotificationDB:
        result = await session.execute(
            select(NotificationDB).where(
                NotificationDB.audience == audience.value,
                NotificationDB.id == notification_id,
            )
        )
        row = result.scalar_one_or_none()
        if row is None:
            raise NotFoundError(f"Notification {notification_id} not found")
        return row

    async def get(self, audience: Audience, notification_id: str) -> Optional[Notification]:
        try:
            async with self._transaction() as session:
                row = await self._get_row(session, audience, notification_id)
                return _notification_from_row(row)
        except NotFoundError:
            return None

    async def prepend(self, notification: Notification) -> Notification:
        async with self._transaction() as session:
            session.add(_notification_to_row(notification))
        return notification

    async def update_flags(
        self,
        audience: Audience,
        notification_id: str,
        read: Optional[bool] = None,
        action_required: Optional[bool] = None,
    ) -> Notification:
        async with self._transaction() as session:
            row = await self._get_row(session, audience, notification_id)
            if read is not None:
                row.read = read
            if action_required is not None:
                row.action_required = action_required
            await session.flush()
            return _notification_from_row(row)

    async def mark_all_read(self, audience: Audience, recipient_id: str) -> int:
        async with self._transaction() as session:
            result = await session.execute(
                update(NotificationDB)
                .where(
                    NotificationDB.audience == audience.value,
                    NotificationDB.recipient_id == recipient_id,
                    NotificationDB.read.is_(False),
                )
                .values(read=True)
            )
            return result.rowcount or 0

    async def delete(self, audience: Audience, notification_id: str) -> Notification:
        async with self._transaction() as session:
            row = await self._get_row(session, audience, notification_id)
            notification = _notification_from_row(row)
            await session.delete(row)
            return notification

    async def clear(self, audience: Audience, recipient_id: str) -> int:
        async with self._transaction() as session:
            result = await session.execute(
                delete(NotificationDB).where(
                    NotificationDB.audience == audience.value,
                    NotificationDB.recipient_id == recipient_id,
                )
            )
            return result.rowcount or 0


class SqlAvailabilityStore(_SqlStore):
    async def list_blocks(
        self, provider_id: Optional[str] = None, day: Optional[date] = None
    ) -> list[AvailabilityBlock]:
        stmt = select(AvailabilityBlockDB)
        if provider_id is not None:
            stmt = stmt.where(AvailabilityBlockDB.provider_id == provider_id)
        if day is not None:
            stmt = stmt.where(AvailabilityBlockDB.date == day)
        stmt = stmt.order_by(AvailabilityBlockDB.date, AvailabilityBlockDB.start_time)
        async with self._transaction() as session:
            result = await session.execute(stmt)
            return [_block_to_pydantic(r) for r in result.scalars().all()]

    async def get_block(self, block_id: str) -> Optional[AvailabilityBlock]:
        async with self._transaction() as session:
            row = await session.get(AvailabilityBlockDB, block_id)
            return _block_to_pydantic(row) if row else None

    async def add_block(self, block: AvailabilityBlock) -> AvailabilityBlock:
        async with self._transaction() as session:
            row = AvailabilityBlockDB(
                id=block.id,
                provider_id=block.provider_id,
                date=block.date,
                start_time=block.start_time,
                end_time=block.end_time,
                created_at=block.created_at,
                updated_at=block.updated_at,
            )
            session.add(row)
            await session.flush()
            return _block_to_pydantic(row)

    async def update_block(self, block: AvailabilityBlock) -> AvailabilityBlock:
        async with self._transaction() as session:
            row = await session.get(AvailabilityBlockDB, block.id)
            if row is None:
                raise NotFoundError(f"Availability block {block.id} not found")
            row.date = block.date
            row.start_time = block.start_time
            row.end_time = block.end_time
            row.updated_at = datetime.now(timezone.utc)
            await session.flush()
            return _block_to_pydantic(row)

    async def delete_block(self, block_id: str) -> AvailabilityBlock:
        async with self._transaction() as session:
            row = await session.get(AvailabilityBlockDB, block_id)
            if row is None:
                raise NotFoundError(f"Availability block {block_id} not found")
            block = _block_to_pydantic(row)
            await session.delete(row)
            return block
