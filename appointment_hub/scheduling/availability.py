"""Provider-published availability blocks."""

import logging
import uuid
from datetime import date
from typing import Optional

from appointment_hub.core.stores import AppointmentStore, AvailabilityStore
from appointment_hub.errors import NotFoundError, RescheduleStateError, ValidationError
from appointment_hub.observability import BookingEventLogger, EventType, get_event_logger
from appointment_hub.scheduling.models import MAX_BLOCKS_PER_DAY, AvailabilityBlock
from appointment_hub.scheduling.slots import SlotGenerator

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Lets a provider publish, edit and withdraw availability blocks.

    Blocks on the same date may not overlap and a date holds at most
    ``MAX_BLOCKS_PER_DAY`` of them. A block that already contains a live
    appointment of its provider is booked and cannot be edited or deleted.
    """

    def __init__(
        self,
        blocks: AvailabilityStore,
        appointments: AppointmentStore,
        generator: Optional[SlotGenerator] = None,
        events: Optional[BookingEventLogger] = None,
    ) -> None:
        self.blocks = blocks
        self.appointments = appointments
        self.generator = generator or SlotGenerator.from_settings()
        self.events = events or get_event_logger()

    async def list(self, provider_id: str, day: Optional[date] = None) -> list[AvailabilityBlock]:
        return await self.blocks.list_blocks(provider_id, day)

    async def _owned(self, provider_id: str, block_id: str) -> AvailabilityBlock:
        block = await self.blocks.get_block(block_id)
        if block is None or block.provider_id != provider_id:
            raise NotFoundError(f"Availability block {block_id} not found")
        return block

    async def _check_placement(
        self, block: AvailabilityBlock, ignore_id: Optional[str] = None
    ) -> None:
        same_day = [
            b
            for b in await self.blocks.list_blocks(block.provider_id, block.date)
            if b.id != ignore_id
        ]
        if any(block.overlaps(b) for b in same_day):
            raise ValidationError("Slot overlaps with existing slot")
        if len(same_day) >= MAX_BLOCKS_PER_DAY:
            raise ValidationError(f"Maximum {MAX_BLOCKS_PER_DAY} slots per day")

    async def _is_booked(self, block: AvailabilityBlock) -> bool:
        for appt in await self.appointments.fetch_appointments(block.provider_id):
            if (
                appt.blocks_slot
                and appt.date == block.date
                and block.fits(appt.time, self.generator.slot_minutes)
            ):
                return True
        return False

    async def create(
        self, provider_id: str, day: date, start_time: str, end_time: str
    ) -> AvailabilityBlock:
        """Publish a new block. Raises ValidationError on overlap or a full day."""
        try:
            block = AvailabilityBlock(
                id=uuid.uuid4().hex,
                provider_id=provider_id,
                date=day,
                start_time=start_time,
                end_time=end_time,
            )
        except ValueError as e:
            raise ValidationError(str(e)) from e
        await self._check_placement(block)
        block = await self.blocks.add_block(block)
        self.events.log_availability(
            EventType.AVAILABILITY_CREATED,
            block.id,
            provider_id,
            date=block.date,
            start_time=block.start_time,
            end_time=block.end_time,
        )
        logger.info(
            f"Availability published: provider={provider_id} {day} {start_time}-{end_time}"
        )
        return block

    async def update(
        self,
        provider_id: str,
        block_id: str,
        day: Optional[date] = None,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
    ) -> AvailabilityBlock:
        current = await self._owned(provider_id, block_id)
        if await self._is_booked(current):
            raise RescheduleStateError("Cannot edit booked slot")
        try:
            block = AvailabilityBlock.model_validate(
                {
                    **current.model_dump(),
                    "date": day or current.date,
                    "start_time": start_time or current.start_time,
                    "end_time": end_time or current.end_time,
                }
            )
        except ValueError as e:
            raise ValidationError(str(e)) from e
        await self._check_placement(block, ignore_id=block.id)
        block = await self.blocks.update_block(block)
        self.events.log_availability(
            EventType.AVAILABILITY_UPDATED,
            block.id,
            provider_id,
            date=block.date,
            start_time=block.start_time,
            end_time=block.end_time,
        )
        return block

    async def delete(self, provider_id: str, block_id: str) -> AvailabilityBlock:
        block = await self._owned(provider_id, block_id)
        if await self._is_booked(block):
            raise RescheduleStateError("Cannot delete booked slot")
        block = await self.blocks.delete_block(block_id)
        self.events.log_availability(
            EventType.AVAILABILITY_DELETED, block.id, provider_id, date=block.date
        )
        logger.info(f"Availability withdrawn: provider={provider_id} block={block_id}")
        return block
